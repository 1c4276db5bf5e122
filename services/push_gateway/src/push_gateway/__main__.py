"""Dev entry point: python -m push_gateway [serve | create-credential NAME]."""

import argparse
from collections.abc import Sequence

from push_gateway.app import build_service, create_app
from push_gateway.config import GatewayConfig


def _parse_drivers(parser: argparse.ArgumentParser, pairs: list[str]) -> dict[str, str]:
    drivers: dict[str, str] = {}
    for pair in pairs:
        platform, sep, key = pair.partition("=")
        if not sep or not platform or not key:
            parser.error(f"--driver expects PLATFORM=KEY, got {pair!r}")
        drivers[platform] = key
    return drivers


def main(argv: Sequence[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="push_gateway", description="Push Gateway")
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("serve", help="Run the development server (default)")
    create = commands.add_parser(
        "create-credential", help="Create a tenant and print its API key"
    )
    create.add_argument("name")
    create.add_argument(
        "--driver",
        action="append",
        default=[],
        metavar="PLATFORM=KEY",
        help="Route a platform to a non-default driver (repeatable)",
    )
    args = parser.parse_args(argv)

    if args.command == "create-credential":
        drivers = _parse_drivers(parser, args.driver)
        credential = build_service().create_credential(args.name, drivers)
        print(f"credential_id={credential.id}")
        print(f"api_key={credential.api_key}")
        return

    config = GatewayConfig()
    app = create_app(build_service(), config)
    app.run(host=config.host, port=config.port)


if __name__ == "__main__":
    main()
