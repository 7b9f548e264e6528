import aiohttp
import pytest

from inreq.clients.auth import APIContext, reauthenticated_request
from inreq.clients.errors import APIConflictError, APIError, APIForbiddenError, \
                                 APINotFoundError, APIUnauthorizedError, check_response

STATUS_PAYLOAD = '{"kind": "Status", "code": 123, "reason": "Why", "message": "msg", "details": {"a": "b"}}'


@reauthenticated_request
async def get_it(url: str, *, context: APIContext) -> int:
    response = await context.session.get(url)
    await check_response(response)
    return response.status


@pytest.fixture()
def respond(resp_mocker, aresponses, hostname):
    def fn(status: int, text: str) -> None:
        response = aresponses.Response(status=status, text=text,
                                       headers={'Content-Type': 'application/json'})
        aresponses.add(hostname, '/', 'get', resp_mocker(return_value=response))
    return fn


def test_aiohttp_errors_are_not_the_api_errors():
    assert not issubclass(APIError, aiohttp.ClientError)


def test_fields_are_empty_without_a_payload():
    exc = APIError(None, status=456)
    assert exc.status == 456
    assert (exc.code, exc.reason, exc.message, exc.details) == (None, None, None, None)
    assert exc.args == (None, None)


def test_fields_are_taken_from_the_payload():
    payload = {"message": "msg", "reason": "Invalid", "code": 123, "details": {"a": "b"}}
    exc = APIError(payload, status=456)
    assert exc.status == 456
    assert exc.code == 123
    assert exc.reason == "Invalid"
    assert exc.message == "msg"
    assert exc.details == {"a": "b"}
    assert str(exc) == "('msg', " + repr(payload) + ")"


@pytest.mark.parametrize('status', [200, 201, 202])
async def test_successful_responses_are_not_errors(respond, hostname, status):
    respond(status, STATUS_PAYLOAD)
    result = await get_it(f"http://{hostname}/")
    assert result == status


@pytest.mark.parametrize('status, exctype', [
    (400, APIError),
    (401, APIUnauthorizedError),
    (403, APIForbiddenError),
    (404, APINotFoundError),
    (409, APIConflictError),
    (422, APIError),
    (500, APIError),
    (503, APIError),
])
async def test_k8s_statuses_are_parsed(respond, hostname, status, exctype):
    respond(status, STATUS_PAYLOAD)

    # 401 is also an authentication failure: the only credentials are used up then.
    with pytest.raises(APIError) as err:
        await get_it(f"http://{hostname}/")

    assert type(err.value) is exctype
    assert isinstance(err.value.__cause__, aiohttp.ClientResponseError)
    assert err.value.status == status
    assert err.value.code == 123
    assert err.value.reason == 'Why'
    assert err.value.message == 'msg'
    assert err.value.details == {'a': 'b'}


@pytest.mark.parametrize('text', [
    pytest.param('unparsable json', id='nonjson'),
    pytest.param('{"kind": "Secret", "data": {"token": "xyz"}}', id='nonstatus'),
    pytest.param('["Status"]', id='nonmapping'),
])
@pytest.mark.parametrize('status', [400, 500])
async def test_other_payloads_are_ignored(respond, hostname, status, text):
    respond(status, text)

    with pytest.raises(APIError) as err:
        await get_it(f"http://{hostname}/")

    assert err.value.status == status
    assert err.value.code is None
    assert err.value.message is None
    assert err.value.details is None
