import sys
import asyncio
import logging
import argparse

from smartmarks import create_app
from smartmarks.config import ClientConfig

log = logging.getLogger('werkzeug')
log.disabled = True
cli = sys.modules['flask.cli']
cli.show_server_banner = lambda *x: None


def serve(args) -> None:
    app = create_app()
    print(f"SmartMarks starting on http://{args.host}:{args.port}", flush=True)
    app.run(host=args.host, port=args.port, debug=False)


async def _watch(args) -> None:
    from smartmarks.client.session import connect, watch

    class Config(ClientConfig):
        BASE_URL = args.url

    session = connect(Config)
    try:
        await session.identity.sign_in(args.username, args.password)
        await session.open()
        await watch(session, asyncio.Event())
    finally:
        await session.close()


def main() -> None:
    p = argparse.ArgumentParser(prog="smartmarks")
    sub = p.add_subparsers(dest="command")

    serve_p = sub.add_parser("serve", help="run the bookmark API")
    serve_p.add_argument("--host", default="0.0.0.0")
    serve_p.add_argument("--port", type=int, default=8072)

    watch_p = sub.add_parser("watch", help="print the live bookmark list")
    watch_p.add_argument("--url", default=ClientConfig.BASE_URL)
    watch_p.add_argument("--username", required=True)
    watch_p.add_argument("--password", required=True)

    args = p.parse_args()
    if args.command == "watch":
        logging.basicConfig(level=logging.INFO, format="%(message)s")
        try:
            asyncio.run(_watch(args))
        except KeyboardInterrupt:
            pass
        return

    if args.command is None:
        args = serve_p.parse_args([])
    serve(args)

if __name__ == "__main__":
    main()
