"""Shared fixtures: fake nodes, a mocked CoreV1Api and a fast-retry annotater."""
from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from node_annotator.core.constants import INSTANCE_ID_ANNOTATION_KEY
from node_annotator.core.retry_state import RetryState
from node_annotator.lib.annotator import NodeAnnotater
from node_annotator.lib.node_cache import NodeInformer
from node_annotator.lib.workqueue import RateLimitingQueue


def make_node(name="node-1", provider_id="gce://proj-1/us-central1-a/vm-7",
              boot_id="boot-a", annotations=None, resource_version="1"):
    return SimpleNamespace(
        metadata=SimpleNamespace(
            name=name,
            annotations=annotations,
            resource_version=resource_version,
        ),
        spec=SimpleNamespace(provider_id=provider_id),
        status=SimpleNamespace(node_info=SimpleNamespace(boot_id=boot_id)),
    )


def make_instance(instance_id=1234567890123456789):
    return SimpleNamespace(id=instance_id)


@pytest.fixture
def core_api():
    return MagicMock(name="CoreV1Api")


@pytest.fixture
def lookup():
    return MagicMock(name="get_instance", return_value=make_instance())


@pytest.fixture
def informer(core_api):
    return NodeInformer(core_api)


@pytest.fixture
def queue():
    q = RateLimitingQueue(name="test", retry_state=RetryState(base_delay=0.001, max_delay=0.01))
    yield q
    q.shut_down()


@pytest.fixture
def annotater(core_api, informer, lookup, queue):
    return NodeAnnotater(core_api, informer, lookup, queue=queue,
                         annotation_key=INSTANCE_ID_ANNOTATION_KEY)
