#!/usr/bin/env python3
"""
CLI tool to mint a scoped automation token with the local signing secret.

For exercising the helper without the remote authority.
"""

import sys
import uuid

from config import load_config
from core.auth import TokenValidator

USAGE = """
Usage:
  python mint_token.py <action_id>                          # 10 minute token, scope "both"
  python mint_token.py <action_id> <ttl_seconds> [scope]    # custom lifetime / scope

Example:
  python mint_token.py flush-dns-macos 300 execute
"""


def mint(action_id: str, ttl_seconds: int = 600, scope: str = "both") -> str:
    config = load_config()
    validator = TokenValidator(config.jwt_secret, config.jwt_algorithm)
    return validator.issue(
        {
            "action_id": action_id,
            "approval_id": f"cli-{uuid.uuid4().hex[:12]}",
            "anonymous_id": "cli-user",
            "scope": scope,
        },
        ttl_seconds=ttl_seconds,
    )


def main():
    if len(sys.argv) < 2:
        print(USAGE)
        return 2

    action_id = sys.argv[1]
    try:
        ttl = int(sys.argv[2]) if len(sys.argv) > 2 else 600
    except ValueError:
        print(f"Invalid ttl: {sys.argv[2]}")
        return 2
    scope = sys.argv[3] if len(sys.argv) > 3 else "both"

    print(mint(action_id, ttl, scope))
    return 0


if __name__ == "__main__":
    sys.exit(main())
