"""Command-line entry point: sign in once and report the token response."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from desktop_oauth.browser import ManualBrowserLauncher, SystemBrowserLauncher
from desktop_oauth.config import ClientConfig
from desktop_oauth.models.errors import OAuth2Error
from desktop_oauth.services.callback import DEFAULT_CALLBACK_TIMEOUT
from desktop_oauth.services.flow import AuthorizationCodeFlow, FlowResult
from desktop_oauth.services.tokens import OAuth2TokenExchanger

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

RULE = "-" * 50


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="desktop-oauth",
        description="OAuth 2.0 authorization code flow with PKCE for desktop clients",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  desktop-oauth --client-secrets client_secret.json
  desktop-oauth --env-file .env --scope "openid email"
  desktop-oauth --client-secrets client_secret.json --no-browser --show-token
""",
    )
    parser.add_argument(
        "--client-secrets",
        metavar="PATH",
        help="Client-secrets JSON with an 'installed' section",
    )
    parser.add_argument(
        "--env-file",
        metavar="PATH",
        help="Read DESKTOP_OAUTH_* settings from this .env file",
    )
    parser.add_argument("--scope", help="Scope to request (default: openid email profile)")
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_CALLBACK_TIMEOUT,
        help="Seconds to wait for the browser redirect (default: 300)",
    )
    parser.add_argument(
        "--http-timeout",
        type=float,
        default=30.0,
        help="Token endpoint timeout in seconds (default: 30)",
    )
    parser.add_argument(
        "--show-token",
        action="store_true",
        help="Print the raw token response (it contains secrets)",
    )
    parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Print the authorization URL instead of opening a browser",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def load_config(args: argparse.Namespace) -> ClientConfig:
    if args.client_secrets:
        return ClientConfig.from_client_secrets_file(args.client_secrets, scope=args.scope)
    return ClientConfig.from_env(env_file=args.env_file, scope=args.scope)


def report(result: FlowResult, show_token: bool) -> int:
    if not result.succeeded:
        error = result.error
        print(f"\nAuthentication failed: {type(error).__name__}: {error}", file=sys.stderr)
        if error is not None and error.retryable:
            print("You can run the command again to retry.", file=sys.stderr)
        return EXIT_FAILURE

    print(RULE)
    print("Token request succeeded.")
    if show_token:
        print(result.token_response.body)
    else:
        print("The token response contains secrets and is not shown.")
        print("Pass --show-token to print it.")
    print(RULE)
    return EXIT_OK


async def authenticate(args: argparse.Namespace, config: ClientConfig) -> FlowResult:
    launcher = ManualBrowserLauncher() if args.no_browser else SystemBrowserLauncher()

    async with OAuth2TokenExchanger(timeout=args.http_timeout) as exchanger:
        flow = AuthorizationCodeFlow(config, browser=launcher, token_exchanger=exchanger)
        try:
            flow.start()
        except OAuth2Error as e:
            return FlowResult(state=flow.state, error=e)

        print(f"[Redirect URI] {flow.session.redirect_uri}")
        print(f"[Authorization URL] {flow.authorization_url}")
        print("Waiting for you to sign in through the browser...")
        result = await flow.run(callback_timeout=args.timeout)

    return result


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print(RULE)
    print("OAuth 2.0 + PKCE sign-in")
    print(RULE)

    try:
        config = load_config(args)
    except OAuth2Error as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    try:
        result = asyncio.run(authenticate(args, config))
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        return EXIT_INTERRUPTED

    return report(result, args.show_token)


if __name__ == "__main__":
    sys.exit(main())
