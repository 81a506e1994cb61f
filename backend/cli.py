import argparse
import asyncio
import sys

import config


async def run_client(start: str) -> None:
    from api_client import ApiClient
    from identity import IdentityProvider
    from views import App

    async with ApiClient() as api:
        app = App(api, IdentityProvider(api))
        await app.run(start)


def main(argv=None):
    parser = argparse.ArgumentParser(prog="name-picker", description="Swipe to agree on a last name.")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="run the data service")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    client = commands.add_parser("app", help="open the terminal client")
    client.add_argument("path", nargs="?", default="/", help="page to open, e.g. /swipe")

    load = commands.add_parser("import", help="load names from a .txt file into the database")
    load.add_argument("args", nargs=argparse.REMAINDER)

    args = parser.parse_args(argv)
    config.setup_logging(args.log_level)

    if args.command == "serve":
        import uvicorn
        uvicorn.run("main:app", host=args.host, port=args.port)
        return 0
    if args.command == "import":
        import import_names
        return import_names.main(args.args)

    try:
        config.api_url()
        config.api_key()
    except config.ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    try:
        asyncio.run(run_client(args.path))
    except (KeyboardInterrupt, EOFError):
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
