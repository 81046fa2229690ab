#!/usr/bin/env python3
"""
healthcheck.py
- Basic healthcheck script for container HEALTHCHECK / exec probes.
- Returns exit code 0 if the annotater API answers /healthz, 1 if not.
"""

import sys

import requests

from node_annotator.core.config import API_PORT


def check(url=None, timeout=2):
    url = url or f"http://127.0.0.1:{API_PORT}/healthz"
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        print(f"❌ Healthcheck failed: {e}")
        return False
    if response.status_code != 200:
        print(f"❌ Healthcheck failed: {url} returned {response.status_code}")
        return False
    return True


def main():
    sys.exit(0 if check() else 1)


if __name__ == "__main__":
    main()
