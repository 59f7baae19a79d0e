import argparse

import uvicorn


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ponto time clock API server")
    parser.add_argument("--host", default="0.0.0.0", help="Host interface")
    parser.add_argument("--port", type=int, default=8000, help="Port")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    return parser


def main() -> None:
    args = build_parser().parse_args()
    uvicorn.run("ponto.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
