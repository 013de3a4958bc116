#!/usr/bin/env python3
"""Generate docker.env from .env and the service account key file.

Copies the variables from .env and inlines service_account_key.json as
GOOGLE_SERVICE_ACCOUNT_JSON, so the container needs no mounted key file.

Usage:
    python utils/gen_docker_env.py [--env .env] [--key service_account_key.json] [--out docker.env]
"""

import argparse
import json
import os
import sys
from typing import List


def read_env_file(path: str) -> List[str]:
    """Return the non-empty, non-comment lines of an env file."""
    lines = []
    with open(path, encoding='utf-8') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#'):
                lines.append(line)
    return lines


def inline_json(name: str, path: str) -> str:
    """Return NAME=<single-line JSON> for a JSON file."""
    with open(path, encoding='utf-8') as f:
        data = json.load(f)
    return f"{name}={json.dumps(data, separators=(',', ':'))}"


def build_docker_env(env_path: str, key_path: str) -> List[str]:
    output_lines = []

    if os.path.exists(env_path):
        output_lines.extend(read_env_file(env_path))
        print(f"  Read {len(output_lines)} variables from {env_path}")
    else:
        print(f"  Warning: {env_path} not found", file=sys.stderr)

    # An inlined key replaces any key file path from .env
    if os.path.exists(key_path):
        output_lines = [l for l in output_lines
                        if not l.startswith('GOOGLE_SERVICE_ACCOUNT_FILE=')]
        output_lines.append(inline_json('GOOGLE_SERVICE_ACCOUNT_JSON', key_path))
        print(f"  Added GOOGLE_SERVICE_ACCOUNT_JSON from {key_path}")
    else:
        print(f"  Warning: {key_path} not found (Google Drive sync won't work)",
              file=sys.stderr)

    return output_lines


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate docker.env")
    parser.add_argument("--env", default=".env", help="Source env file")
    parser.add_argument("--key", default="service_account_key.json",
                        help="Service account key file")
    parser.add_argument("--out", default="docker.env", help="Output file")
    args = parser.parse_args(argv)

    output_lines = build_docker_env(args.env, args.key)

    with open(args.out, 'w', encoding='utf-8') as f:
        f.write('\n'.join(output_lines) + '\n')

    print(f"\nGenerated {args.out} with {len(output_lines)} variables")


if __name__ == '__main__':
    main()
