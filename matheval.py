#!/usr/bin/env python3
"""
matheval.py — MathEval command line.

Configuration: environment variables with the MATHEVAL_ prefix (PORT also
works for the port) or a .env file.

Subcommands:
    serve   — run the HTTP API (uvicorn)
    eval    — evaluate an expression locally, without the server
    query   — evaluate an expression on a running server (GET or POST /v4/)
    health  — check a running server

Usage:
    python matheval.py serve --port 3000
    python matheval.py eval --expr "sqrt(16) + 2^3"
    python matheval.py eval -e "1/3" -p 3
    python matheval.py query --expr "5 cm to inch" --post
    python matheval.py health --url http://localhost:3000
"""
from __future__ import annotations

import argparse
import sys
from typing import Any

import httpx
from rich import box
from rich.console import Console
from rich.table import Table


# -- helpers ---------------------------------------------------------------

_CONSOLE: Console | None = None


def _console() -> Console:
    global _CONSOLE
    if _CONSOLE is None:
        _CONSOLE = Console(highlight=False)
    return _CONSOLE


def _print_kv_table(title: str, rows: list[tuple[str, Any]]) -> None:
    table = Table(title=title, box=box.ASCII, show_header=False, pad_edge=False)
    table.add_column("Key", no_wrap=True, style="bold cyan")
    table.add_column("Value")
    for key, value in rows:
        table.add_row(str(key), str(value))
    _console().print(table)


def _read_expr(args: argparse.Namespace) -> str:
    expr = args.expr or sys.stdin.read().strip()
    if not expr:
        print("Error: pass an expression with --expr or stdin", file=sys.stderr)
        sys.exit(1)
    return expr


def _base_url(args: argparse.Namespace) -> str:
    from config import Settings

    if args.url:
        return args.url.rstrip("/")
    return f"http://localhost:{Settings().port}"


def _timeout() -> float:
    from config import Settings

    return Settings().client_timeout_ms / 1000.0


# -- subcommands -----------------------------------------------------------

def _serve(args: argparse.Namespace) -> None:
    import uvicorn

    from config import Settings

    s = Settings()
    uvicorn.run(
        "api.main:app",
        host=args.host or s.host,
        port=args.port or s.port,
        reload=args.reload,
        log_level=s.log_level.lower(),
    )


def _eval(args: argparse.Namespace) -> None:
    from adapters.evaluator.sympy_evaluator import SympyEvaluator
    from adapters.result_formatter import format_result
    from config import Settings
    from contracts import ApiError, EvaluationRequest

    try:
        body = EvaluationRequest.from_params(_read_expr(args), args.precision)
        evaluator = SympyEvaluator(max_expression_length=Settings().max_expression_length)
        result = evaluator.evaluate(body.expression)
    except ApiError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        sys.exit(1)

    formatted = format_result(result, body.precision, evaluator)
    if args.quiet:
        print(formatted)
        return
    _print_kv_table("Evaluation", [
        ("expression", body.expression),
        ("kind", evaluator.describe(result).value),
        ("precision", "-" if body.precision is None else body.precision),
        ("result", formatted),
    ])


def _query(args: argparse.Namespace) -> None:
    expr = _read_expr(args)
    url = f"{_base_url(args)}/v4/"

    try:
        if args.post:
            payload: dict[str, Any] = {"expr": expr}
            if args.precision is not None:
                payload["precision"] = args.precision
            response = httpx.post(url, json=payload, timeout=_timeout())
        else:
            params: dict[str, Any] = {"expr": expr}
            if args.precision is not None:
                params["precision"] = args.precision
            response = httpx.get(url, params=params, timeout=_timeout())
    except httpx.HTTPError as exc:
        print(f"Error: server unreachable: {exc}", file=sys.stderr)
        sys.exit(1)

    if response.status_code != 200:
        try:
            error = response.json().get("error")
        except ValueError:
            error = response.text
        print(f"Error ({response.status_code}): {error}", file=sys.stderr)
        sys.exit(1)

    print(response.json()["result"] if args.post else response.text)


def _health(args: argparse.Namespace) -> None:
    url = f"{_base_url(args)}/health"
    try:
        response = httpx.get(url, timeout=_timeout())
        response.raise_for_status()
        payload = response.json()
    except httpx.HTTPError as exc:
        print("status:  error", file=sys.stderr)
        print(f"server:  {exc}", file=sys.stderr)
        sys.exit(1)

    _print_kv_table("Health", [
        ("url", url),
        ("status", payload.get("status")),
        ("timestamp", payload.get("timestamp")),
    ])


# -- main ------------------------------------------------------------------

def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="matheval",
        description="MathEval — math.js v4 compatible expression API",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # serve
    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", help="Bind address (default from settings)")
    p.add_argument("--port", type=int, help="Port (default: PORT or 3000)")
    p.add_argument("--reload", action="store_true", help="Reload on code changes")

    # eval
    p = sub.add_parser("eval", help="Evaluate an expression locally")
    p.add_argument("--expr", "-e", help="Expression (or stdin)")
    p.add_argument("--precision", "-p", type=int, help="Significant digits")
    p.add_argument("--quiet", "-q", action="store_true",
                   help="Print only the formatted result")

    # query
    p = sub.add_parser("query", help="Evaluate an expression on a running server")
    p.add_argument("--expr", "-e", help="Expression (or stdin)")
    p.add_argument("--precision", "-p", type=int, help="Significant digits")
    p.add_argument("--post", action="store_true", help="Use POST with a JSON body")
    p.add_argument("--url", help="Server base URL (default http://localhost:<port>)")

    # health
    p = sub.add_parser("health", help="Check a running server")
    p.add_argument("--url", help="Server base URL (default http://localhost:<port>)")

    args = parser.parse_args(argv)

    commands = {
        "serve":  _serve,
        "eval":   _eval,
        "query":  _query,
        "health": _health,
    }
    commands[args.command](args)


if __name__ == "__main__":
    main()
