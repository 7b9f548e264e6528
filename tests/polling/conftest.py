import pytest

from inreq.structs.references import Resource


@pytest.fixture()
def resource(namespaced_resource) -> Resource:
    return namespaced_resource


@pytest.fixture()
def submitted():
    return {
        'apiVersion': 'appstudio.redhat.com/v1alpha1',
        'kind': 'InternalRequest',
        'metadata': {'name': 'release-x7k2p', 'namespace': 'ns', 'generateName': 'release-'},
        'spec': {'request': 'release', 'params': {}},
    }


@pytest.fixture()
def create_mock(mocker, submitted):
    return mocker.patch('inreq.clients.creating.create_obj', return_value=submitted)


@pytest.fixture()
def read_mock(mocker, submitted):
    return mocker.patch('inreq.clients.fetching.read_obj', return_value=submitted)
