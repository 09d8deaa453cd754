import argparse
import json
import logging
import sys
from typing import Optional, TextIO

from .access_check import check_api_access
from .blob_store import StoreUnavailableError
from .config import Settings
from .identity import CallerIdentity
from .models import QueryFilters
from .service import build_reader, build_store, build_writer
from .summary import summarize_flights
from .validation import ValidationError, normalize_scope, normalize_status, parse_date_range


def _add_query_arguments(parser: argparse.ArgumentParser) -> None:
    _ = parser.add_argument("--caller", required=True)
    _ = parser.add_argument("--teams", default="")
    _ = parser.add_argument("--org")
    _ = parser.add_argument("--scope", default="own", choices=["own", "team", "org", "all"])
    _ = parser.add_argument("--status")
    _ = parser.add_argument("--from", dest="date_from")
    _ = parser.add_argument("--to", dest="date_to")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="flight-tracker")
    subparsers = parser.add_subparsers(dest="command", required=True)

    append = subparsers.add_parser("append")
    _ = append.add_argument("--file", default="-")

    query = subparsers.add_parser("query")
    _add_query_arguments(query)
    _ = query.add_argument("--limit", type=int)

    summary = subparsers.add_parser("summary")
    _add_query_arguments(summary)

    partitions = subparsers.add_parser("partitions")
    _ = partitions.add_argument("--from", dest="date_from")
    _ = partitions.add_argument("--to", dest="date_to")

    api_access_check = subparsers.add_parser("api-access-check")
    _ = api_access_check.add_argument("--url", required=True)
    _ = api_access_check.add_argument("--token")
    _ = api_access_check.add_argument("--expect-auth", action="store_true")
    _ = api_access_check.add_argument("--timeout-seconds", type=float, default=15)
    _ = api_access_check.add_argument("--attempts", type=int, default=3)
    _ = api_access_check.add_argument("--backoff-seconds", type=float, default=0.5)

    serve = subparsers.add_parser("serve")
    _ = serve.add_argument("--host", default="127.0.0.1")
    _ = serve.add_argument("--port", type=int, default=8000)

    return parser


def _caller_from_args(args: argparse.Namespace) -> CallerIdentity:
    teams = frozenset(team.strip() for team in args.teams.split(",") if team.strip())
    return CallerIdentity(user_id=args.caller, teams=teams, org_id=args.org or None)


def _filters_from_args(args: argparse.Namespace, limit: Optional[int] = None) -> QueryFilters:
    return QueryFilters(
        scope=normalize_scope(args.scope),
        status=normalize_status(args.status),
        date_range=parse_date_range(args.date_from, args.date_to),
        limit=limit,
    )


def _read_record(path: str, stdin: Optional[TextIO]) -> object:
    try:
        if path == "-":
            return json.load(stdin or sys.stdin)
        with open(path, encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"flight record must be valid JSON: {exc.msg}") from exc


def append_command(path: str = "-", stdin: Optional[TextIO] = None) -> dict[str, object]:
    record = _read_record(path, stdin)
    if not isinstance(record, dict):
        raise ValidationError("flight record must be a JSON object")
    settings = Settings.from_env()
    writer = build_writer(settings, build_store(settings))
    return writer.append(record).to_dict()


def query_command(args: argparse.Namespace) -> dict[str, object]:
    filters = _filters_from_args(args, limit=args.limit)
    settings = Settings.from_env()
    reader = build_reader(settings, build_store(settings))
    return reader.query(filters, _caller_from_args(args)).to_dict()


def summary_command(args: argparse.Namespace) -> dict[str, object]:
    filters = _filters_from_args(args)
    settings = Settings.from_env()
    reader = build_reader(settings, build_store(settings))
    records, skipped = reader.matching(filters, _caller_from_args(args))
    summary = summarize_flights(records).to_dict()
    summary["skipped"] = skipped
    return summary


def partitions_command(date_from: Optional[str] = None, date_to: Optional[str] = None) -> dict[str, object]:
    date_range = parse_date_range(date_from, date_to)
    settings = Settings.from_env()
    reader = build_reader(settings, build_store(settings))
    keys = reader.partition_keys(date_range)
    return {"partitions": keys, "count": len(keys)}


def run_api_access_check_command(
    url: str,
    token: Optional[str] = None,
    expect_auth: bool = False,
    timeout_seconds: float = 15,
    attempts: int = 3,
    backoff_seconds: float = 0.5,
) -> dict[str, object]:
    result = check_api_access(
        url,
        timeout_seconds=timeout_seconds,
        token=token,
        expect_auth=expect_auth,
        attempts=attempts,
        backoff_seconds=backoff_seconds,
    )
    return result.to_dict()


def serve_command(host: str, port: int) -> None:
    import uvicorn

    uvicorn.run("src.tracker.api:create_app_from_env", host=host, port=port, factory=True)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "append":
            print(json.dumps(append_command(args.file)))
            return 0

        if args.command == "query":
            print(json.dumps(query_command(args), default=str))
            return 0

        if args.command == "summary":
            print(json.dumps(summary_command(args), default=str))
            return 0

        if args.command == "partitions":
            print(json.dumps(partitions_command(args.date_from, args.date_to)))
            return 0
    except ValidationError as exc:
        print(json.dumps({"error": str(exc)}))
        return 2
    except (StoreUnavailableError, ValueError) as exc:
        print(json.dumps({"error": str(exc)}))
        return 1

    if args.command == "api-access-check":
        result = run_api_access_check_command(
            url=args.url,
            token=args.token,
            expect_auth=args.expect_auth,
            timeout_seconds=args.timeout_seconds,
            attempts=args.attempts,
            backoff_seconds=args.backoff_seconds,
        )
        print(json.dumps(result, default=str))
        return 0 if bool(result.get("ok")) else 2

    if args.command == "serve":
        serve_command(args.host, args.port)
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
