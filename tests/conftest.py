import json
import logging
import re
from unittest.mock import AsyncMock, MagicMock

import pytest

from inreq.clients import auth
from inreq.clients.auth import APIContext
from inreq.structs.configuration import ClientSettings
from inreq.structs.credentials import ConnectionInfo, Vault, VaultKey
from inreq.structs.references import Resource


def _make_resource(namespaced: bool) -> Resource:
    return Resource('appstudio.redhat.com', 'v1alpha1', 'internalrequests',
                    kind='InternalRequest', namespaced=namespaced)


@pytest.fixture()
def namespaced_resource():
    return _make_resource(namespaced=True)


@pytest.fixture()
def cluster_resource():
    return _make_resource(namespaced=False)


@pytest.fixture(params=[True, False], ids=['namespaced', 'cluster'])
def resource(request):
    """ Both scopes, for the API-level tests: the URLs differ, the logic does not. """
    return _make_resource(namespaced=request.param)


@pytest.fixture()
def namespace(resource):
    return 'ns' if resource.namespaced else None


@pytest.fixture()
def settings():
    return ClientSettings()


@pytest.fixture()
def logger():
    return logging.getLogger('inreq.test')


#
# The fake API server. Nothing may reach a real cluster from the tests:
# all HTTP calls go to `aresponses` via the fixture's credentials.
#

@pytest.fixture()
def hostname():
    return 'fake-host'


@pytest.fixture()
def fake_vault(hostname):
    """
    Credentials of the fake API server, set as if inside of `running.invoke`.
    """
    vault = Vault({VaultKey('fixture'): ConnectionInfo(
        server=f'https://{hostname}',
        default_namespace='fixture-ns',
    )})
    token = auth.vault_var.set(vault)
    try:
        yield vault
    finally:
        auth.vault_var.reset(token)


@pytest.fixture()
async def enforced_context(fake_vault, mocker):
    """
    The only API context for all the calls of a test, closed after the test.

    Since every API call gets the same session, the tests can patch it.
    """
    _, item = fake_vault.select()
    context = APIContext(item.info)
    mocker.patch('inreq.clients.auth.APIContext', return_value=context)
    async with context.session:
        yield context


@pytest.fixture()
async def enforced_session(enforced_context: APIContext):
    yield enforced_context.session


@pytest.fixture()
def resp_mocker(fake_vault, enforced_session, aresponses):
    """
    Make the `aresponses` handlers, which are also mocks to assert the calls.

    The arguments are those of `MagicMock`: e.g. the response as the return
    value, or a sequence of them as the side effect. The request's JSON body
    (or text) is stored as ``request.data`` of the call's argument::

        handler = resp_mocker(return_value=aiohttp.web.json_response({}))
        aresponses.add(hostname, '/some/path', 'post', handler)
        ...
        assert handler.call_args[0][0].data == {...}
    """
    def resp_maker(*args, **kwargs):
        responder = MagicMock(*args, **kwargs)

        async def handle(request):
            # The body can only be read while the request is being handled.
            try:
                request.data = await request.json()
            except json.JSONDecodeError:
                request.data = await request.text()
            return responder()

        return AsyncMock(side_effect=handle)
    return resp_maker


@pytest.fixture()
def assert_logs(caplog):
    """
    Check that the messages matching the patterns are logged in this order.

    Other messages in between are fine, unless they match the prohibited patterns.
    """
    def assert_logs_fn(patterns, prohibited=()):
        __traceback_hide__ = True
        expected = list(patterns)
        for message in caplog.messages:
            bad = [pattern for pattern in prohibited if re.search(pattern, message)]
            if bad:
                raise AssertionError(f"Prohibited log pattern found: {message!r} ~ {bad[0]!r}")
            if expected and re.search(expected[0], message):
                expected.pop(0)
        if expected:
            raise AssertionError(f"Few patterns were missed: {expected!r}")

    return assert_logs_fn
