#!/usr/bin/env python3
"""
Command line front end for the auth API.

    podcastparty register you@example.com
    podcastparty login you@example.com
    podcastparty whoami
    podcastparty refresh
    podcastparty logout
"""
import argparse
import getpass
import logging
import os
import sys
from typing import Optional

from client.api import DEFAULT_BASE_URL, ApiError, AuthApi, ConnectionFailed
from client.forms import AuthForm, LoginForm, RegisterForm
from client.session import NotAuthenticated, Session
from client.storage import TokenStore


def _print_errors(form: AuthForm) -> None:
    for field, message in form.errors.items():
        print(f"{field}: {message}", file=sys.stderr)


def _run_form(form: AuthForm, values: dict) -> int:
    for name, value in values.items():
        form.set_field(name, value)
    if form.submit():
        print(f"Signed in as {form.store.user['email']}")
        return 0
    _print_errors(form)
    return 1


def cmd_register(args, api: AuthApi, store: TokenStore) -> int:
    password = args.password or getpass.getpass("Password: ")
    repeat = args.password or getpass.getpass("Repeat password: ")
    return _run_form(RegisterForm(api, store), {"email": args.email, "password": password, "repeatPassword": repeat})


def cmd_login(args, api: AuthApi, store: TokenStore) -> int:
    password = args.password or getpass.getpass("Password: ")
    return _run_form(LoginForm(api, store), {"email": args.email, "password": password})


def cmd_refresh(args, api: AuthApi, store: TokenStore) -> int:
    Session(api, store).refresh()
    print("Tokens refreshed")
    return 0


def cmd_logout(args, api: AuthApi, store: TokenStore) -> int:
    Session(api, store).logout()
    print("Logged out")
    return 0


def cmd_whoami(args, api: AuthApi, store: TokenStore) -> int:
    user = Session(api, store).me()
    print(f"{user['email']} ({user['id']})")
    return 0


COMMANDS = {
    "register": cmd_register,
    "login": cmd_login,
    "refresh": cmd_refresh,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="podcastparty", description="PodcastParty account client")
    parser.add_argument("--base-url", default=os.environ.get("PODCASTPARTY_API_URL", DEFAULT_BASE_URL),
                        help="API base URL")
    parser.add_argument("--session-file", help="Where tokens are kept between runs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("register", "login"):
        p = sub.add_parser(name)
        p.add_argument("email")
        p.add_argument("--password", help="Prompted for when omitted")
    sub.add_parser("refresh", help="Rotate the stored token pair")
    sub.add_parser("logout", help="Revoke the refresh token and forget local tokens")
    sub.add_parser("whoami", help="Show the signed-in user")
    return parser


def main(argv=None, api: Optional[AuthApi] = None) -> int:
    """Run one command. An injected ``api`` is used as is and left open."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s - %(name)s - %(message)s")
    store = TokenStore(args.session_file)
    owned = api is None
    if owned:
        api = AuthApi(args.base_url)
    try:
        return COMMANDS[args.command](args, api, store)
    except NotAuthenticated as e:
        print(f"Not signed in: {e}", file=sys.stderr)
    except ApiError as e:
        print(f"Server error {e.status_code}: {e.message or 'request failed'}", file=sys.stderr)
    except ConnectionFailed:
        print("Connection error. Check your internet connection.", file=sys.stderr)
    finally:
        if owned:
            api.close()
    return 1


if __name__ == "__main__":
    sys.exit(main())
