"""
Pytest configuration and fixtures
"""
from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client.rest import ApiException

from kwpm import specs


def _not_found(*args, **kwargs):
    raise ApiException(status=404, reason="Not Found")


@pytest.fixture
def not_found():
    """side_effect that answers like a missing object"""
    return _not_found


@pytest.fixture
def deploy():
    return specs.wordpress_deployment()


@pytest.fixture
def k8s():
    """Kwpm with CoreV1Api/AppsV1Api replaced by mocks"""
    with patch("kwpm.kwpm.config.load_kube_config"), \
         patch("kwpm.kwpm.client.CoreV1Api") as core, \
         patch("kwpm.kwpm.client.AppsV1Api") as apps:
        core_v1 = MagicMock()
        apps_v1 = MagicMock()
        core.return_value = core_v1
        apps.return_value = apps_v1

        from kwpm.kwpm import Kwpm
        kk = Kwpm(namespace="blog", pv_base_path="/data/volumes/kwpm")
        yield kk, core_v1, apps_v1


@pytest.fixture
def namespace_list():
    def build(*names):
        items = []
        for name in names:
            ns = MagicMock()
            ns.metadata.name = name
            items.append(ns)
        return MagicMock(items=items)
    return build
