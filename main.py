#!/usr/bin/env python3
"""
Pennant -- feature-flag service: admin API, SDK API and browser-facing edge.

Usage:
  python main.py hash-password
  python main.py hash-password --password 's3cret'
  python main.py serve api
  python main.py serve edge --port 3000

Environment variables (see core/config.py for the full list):
  DEBUG                 true for development. Anything else is production.
  SESSION_SECRET        Session cookie key material, at least 32 characters.
  ADMIN_EMAIL           Administrator email.
  ADMIN_PASSWORD_HASH   Output of `python main.py hash-password`.
  API_URL               Backend base URL the edge forwards to.
"""

import argparse
import getpass
import sys

from auth.passwords import hash_password

_DEFAULT_PORTS = {"api": 8000, "edge": 3000}
# The edge target never imports asgi/api.main, so it starts without backend secrets.
_APP_PATHS = {"api": "asgi:app", "edge": "edge.main:edge_app"}


def _hash_password(args: argparse.Namespace) -> int:
    """Print an ADMIN_PASSWORD_HASH value for the given or prompted password."""
    password = args.password
    if password is None:
        password = getpass.getpass("Password: ")
        if getpass.getpass("Confirm:  ") != password:
            print("  [!] Passwords do not match.", file=sys.stderr)
            return 1
    if not password:
        print("  [!] Password must not be empty.", file=sys.stderr)
        return 1
    print(hash_password(password))
    return 0


def _serve(args: argparse.Namespace) -> int:
    # Imported lazily so hash-password works without a server stack.
    import uvicorn

    port = args.port or _DEFAULT_PORTS[args.target]
    uvicorn.run(_APP_PATHS[args.target], host=args.host, port=port, reload=args.reload)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="pennant",
        description="Feature-flag service: admin API, SDK API and edge gateway.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py hash-password
  ADMIN_PASSWORD_HASH=... SESSION_SECRET=... python main.py serve api
  API_URL=http://localhost:8000 python main.py serve edge
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    hp = sub.add_parser("hash-password", help="Hash a password for ADMIN_PASSWORD_HASH")
    hp.add_argument(
        "--password",
        metavar="PASSWORD",
        default=None,
        help="Password to hash. Prompted for (twice) when omitted.",
    )
    hp.set_defaults(func=_hash_password)

    serve = sub.add_parser("serve", help="Run the API or the edge gateway under uvicorn")
    serve.add_argument("target", choices=["api", "edge"], help="Which process to run")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: 8000 api, 3000 edge)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    args = parser.parse_args()
    if not getattr(args, "func", None):
        parser.print_help()
        return
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
