import asyncio

import aiohttp
import pytest

from inreq.clients.errors import APIConflictError, APIError, APIForbiddenError
from inreq.reactor.polling import ProtocolError, SubmissionError, submit
from inreq.structs.requests import build_body


@pytest.fixture()
def body():
    return build_body('release', {'a': 'b'})


async def test_created_object_is_returned(
        create_mock, submitted, body, settings, resource, logger):
    created = await submit(body=body, settings=settings, resource=resource,
                           namespace='ns', logger=logger)

    assert created == submitted
    assert create_mock.call_count == 1
    assert create_mock.call_args_list[0][1] == dict(
        settings=settings,
        resource=resource,
        namespace='ns',
        body=body,
        logger=logger,
    )


@pytest.mark.parametrize('error', [
    pytest.param(APIError({'kind': 'Status', 'reason': 'Invalid', 'message': 'bad spec'},
                          status=422), id='invalid'),
    pytest.param(APIForbiddenError(None, status=403), id='forbidden'),
    pytest.param(APIConflictError(None, status=409), id='conflict'),
])
async def test_api_errors_are_not_retried(
        create_mock, body, settings, resource, logger, error):
    create_mock.side_effect = error

    with pytest.raises(SubmissionError) as err:
        await submit(body=body, settings=settings, resource=resource,
                     namespace='ns', logger=logger)

    assert err.value.__cause__ is error
    assert f"HTTP {error.status}" in str(err.value)
    assert create_mock.call_count == 1


async def test_api_error_details_are_reported(
        create_mock, body, settings, resource, logger):
    create_mock.side_effect = APIError(
        {'kind': 'Status', 'reason': 'Invalid', 'message': 'bad spec'}, status=422)

    with pytest.raises(SubmissionError) as err:
        await submit(body=body, settings=settings, resource=resource,
                     namespace='ns', logger=logger)

    assert "HTTP 422, Invalid" in str(err.value)
    assert "bad spec" in str(err.value)


@pytest.mark.parametrize('error', [
    pytest.param(aiohttp.ClientConnectionError("refused"), id='connection'),
    pytest.param(asyncio.TimeoutError(), id='timeout'),
])
async def test_network_errors_are_not_retried(
        create_mock, body, settings, resource, logger, error):
    create_mock.side_effect = error

    with pytest.raises(SubmissionError):
        await submit(body=body, settings=settings, resource=resource,
                     namespace='ns', logger=logger)

    assert create_mock.call_count == 1


@pytest.mark.parametrize('created', [
    pytest.param({}, id='no-metadata'),
    pytest.param({'metadata': {}}, id='no-name'),
    pytest.param({'metadata': {'name': ''}}, id='empty-name'),
    pytest.param({'metadata': {'generateName': 'release-'}}, id='only-prefix'),
])
async def test_missing_name_breaks_the_protocol(
        create_mock, body, settings, resource, logger, created):
    create_mock.return_value = created

    with pytest.raises(ProtocolError):
        await submit(body=body, settings=settings, resource=resource,
                     namespace='ns', logger=logger)
