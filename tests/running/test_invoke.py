import pytest

from inreq.clients import auth
from inreq.reactor.polling import Outcome, ProtocolError, SubmissionError
from inreq.reactor.running import invoke, run
from inreq.structs.credentials import ConnectionInfo, LoginError, Vault
from inreq.structs.requests import RequestSpec


@pytest.fixture()
def spec():
    return RequestSpec(name='release')


@pytest.fixture()
def vault():
    return Vault({'fixture': ConnectionInfo(server='https://fake-host')})


@pytest.fixture()
def submit_and_await(mocker):
    return mocker.patch('inreq.reactor.polling.submit_and_await', return_value=Outcome.SUCCEEDED)


@pytest.fixture()
def authenticate(mocker):
    return mocker.patch('inreq.utilities.piggybacking.authenticate')


@pytest.mark.parametrize('outcome, exit_code', [
    (Outcome.SUCCEEDED, 0),
    (Outcome.FAILED, 21),
    (Outcome.REJECTED, 22),
    (Outcome.TIMED_OUT, 1),
    (None, 0),
])
async def test_outcomes_to_exit_codes(
        spec, vault, settings, submit_and_await, authenticate, outcome, exit_code):
    submit_and_await.return_value = outcome
    result = await invoke(spec, settings=settings, vault=vault)
    assert result == exit_code


@pytest.mark.parametrize('error', [
    pytest.param(SubmissionError("boo!"), id='submission'),
    pytest.param(ProtocolError("boo!"), id='protocol'),
    pytest.param(LoginError("boo!"), id='login'),
])
async def test_errors_to_exit_codes(
        spec, vault, settings, submit_and_await, authenticate, error, caplog):
    submit_and_await.side_effect = error
    result = await invoke(spec, settings=settings, vault=vault)
    assert result == 1
    assert any("boo!" in message for message in caplog.messages)


async def test_unexpected_errors_are_escalated(
        spec, vault, settings, submit_and_await, authenticate):
    submit_and_await.side_effect = ZeroDivisionError()
    with pytest.raises(ZeroDivisionError):
        await invoke(spec, settings=settings, vault=vault)


async def test_populated_vault_is_used_as_is(
        spec, vault, settings, submit_and_await, authenticate):
    await invoke(spec, settings=settings, vault=vault)
    assert not authenticate.called


async def test_empty_vault_is_authenticated(
        spec, settings, submit_and_await, authenticate):
    vault = Vault()
    await invoke(spec, settings=settings, vault=vault, context_name='ctx')
    assert authenticate.call_count == 1
    assert authenticate.call_args_list[0][1]['vault'] is vault
    assert authenticate.call_args_list[0][1]['context_name'] == 'ctx'


async def test_authentication_failure(
        spec, settings, submit_and_await, authenticate):
    authenticate.side_effect = LoginError("no creds")
    result = await invoke(spec, settings=settings, vault=Vault())
    assert result == 1
    assert not submit_and_await.called


async def test_vault_is_set_during_the_invocation(
        spec, vault, settings, submit_and_await, authenticate):
    seen = []
    submit_and_await.side_effect = lambda *_, **__: seen.append(auth.vault_var.get())
    await invoke(spec, settings=settings, vault=vault)
    assert seen == [vault]
    assert auth.vault_var.get(None) is not vault


async def test_vault_is_closed_at_exit(
        spec, vault, settings, submit_and_await, authenticate, mocker):
    close_mock = mocker.patch.object(vault, 'close')
    await invoke(spec, settings=settings, vault=vault)
    assert close_mock.await_count == 1


def test_sync_run(spec, vault, settings, submit_and_await, authenticate):
    submit_and_await.return_value = Outcome.REJECTED
    result = run(spec, settings=settings, vault=vault)
    assert result == 22
