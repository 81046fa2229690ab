#!/usr/bin/env python3
"""
entrypoint.py
- Manual entrypoint for the node annotater, e.g. via `kubectl exec`.
- Usage:
    node-annotator run
    node-annotator resolve gce://<project>/<zone>/<instance-name>

- `resolve` performs a one-shot lookup and prints the instance id that would
  be written to the node annotation.
"""

import sys

from node_annotator.lib.identity import IdentityError, resolve_instance_id


def usage():
    print("Usage: node-annotator <command> [args]")
    print("Available commands:")
    print("  run                    Run the node annotater controller")
    print("  resolve <provider-id>  Print the GCE instance id for a provider URI")
    sys.exit(1)


def resolve(provider_id, lookup=None):
    if lookup is None:
        from node_annotator.core.gce_client import get_instance as lookup
    try:
        instance_id = resolve_instance_id(provider_id, lookup)
    except IdentityError as e:
        print(f"❌ {e}")
        return 1
    print(instance_id)
    return 0


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    if not args:
        usage()

    command = args[0]

    if command == "run" and len(args) == 1:
        from node_annotator import main as app
        app.main()
    elif command == "resolve" and len(args) == 2:
        sys.exit(resolve(args[1]))
    else:
        print(f"❌ Unknown command: {' '.join(args)}")
        usage()


if __name__ == "__main__":
    main()
