"""
kube_client.py
- Provides a shared, preconfigured Kubernetes CoreV1Api for all modules.
- Prefers in-cluster service account config, falls back to a kubeconfig file.
"""

from kubernetes import client, config
from loguru import logger

from node_annotator.core.config import KUBECONFIG

_core_api = None


def load_kube_config():
    try:
        config.load_incluster_config()
        logger.info("[kube_client] Using in-cluster configuration")
    except config.ConfigException:
        config.load_kube_config(config_file=KUBECONFIG)
        logger.info(f"[kube_client] Using kubeconfig {KUBECONFIG or '~/.kube/config'}")


def get_core_api():
    global _core_api
    if _core_api is None:
        load_kube_config()
        _core_api = client.CoreV1Api()
    return _core_api
