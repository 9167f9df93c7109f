"""Command line entry points.

``get-retail-prediction`` asks for predictions for a single user event
described by flags. ``get-retail-predictions`` runs every user event in a
JSON parameter input file.
"""
from __future__ import annotations

import argparse
import sys
from typing import Callable, List, Optional, Sequence

from retail_predictions import __version__
from retail_predictions.errors import PredictionError, ValidationError
from retail_predictions.models.prediction import PredictionConfig, UserEventRecord
from retail_predictions.services.prediction import PredictionService
from retail_predictions.services.requests import MAX_RESULTS, MIN_RESULTS, RequestBuilder, check_page_size
from retail_predictions.utils.logger import Logger

DESCRIPTION = (
    "A command line application designed to provide a simple method to request "
    "predictions from a given Retail API model."
)


class _ArgumentParser(argparse.ArgumentParser):
    """Reports usage problems as ValidationError instead of exiting with status 2."""

    def error(self, message):
        raise ValidationError(message)


def _base_parser(prog: str, usage: str) -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog=prog,
        usage=usage,
        description=DESCRIPTION,
        epilog=f"{prog} {__version__}",
        allow_abbrev=False,
    )
    parser.add_argument("-p", dest="project", default="", help="Google Cloud Project Number (Required)")
    parser.add_argument("-l", dest="location", default="global", help="Location (default: %(default)s)")
    parser.add_argument("-c", dest="catalog", default="default_catalog", help="Catalog (default: %(default)s)")
    parser.add_argument("-s", dest="serving_config", default="", help="Serving Config (Required)")
    return parser


def build_single_parser() -> argparse.ArgumentParser:
    prog = "get-retail-prediction"
    parser = _base_parser(prog, f"{prog} -p PROJECT_NUMBER -s SERVING_CONFIG -type EVENT_TYPE -visitor VISITOR_ID -product PRODUCT_ID")
    parser.add_argument("-b", dest="branch", default=None, help="Branch; when given, product titles are looked up")
    parser.add_argument("-n", dest="number", type=int, default=10, help="Number of Predictions (default: %(default)s)")
    parser.add_argument("-type", dest="event_type", default="", help="Event Type (Required)")
    parser.add_argument("-visitor", dest="visitor_id", default="", help="Visitor ID (Required)")
    parser.add_argument("-product", dest="product_id", default="", help="Product ID (Required)")
    parser.add_argument("-filter", dest="filter", default="", help="Filter String")
    parser.add_argument("-experiment", dest="experiment", default="", help="Experiment Group")
    parser.add_argument("-json", dest="json", action="store_true", help="Output log lines as JSON")
    parser.add_argument("-v", dest="verbose", action="store_true", help="Output Verbose Detail")
    return parser


def build_batch_parser() -> argparse.ArgumentParser:
    prog = "get-retail-predictions"
    parser = _base_parser(prog, f"{prog} -p PROJECT_NUMBER -s SERVING_CONFIG -i INPUT_FILE")
    parser.add_argument("-b", dest="branch", default="0", help="Branch (default: %(default)s)")
    parser.add_argument("-i", dest="input_file", default="", help="Parameter Input File (Required)")
    parser.add_argument(
        "-n", dest="number", type=int, default=5,
        help=f"Number of Predictions, {MIN_RESULTS}-{MAX_RESULTS} (default: %(default)s)",
    )
    parser.add_argument("-f", dest="filter", default="", help="Filter String")
    parser.add_argument("-json", dest="json", action="store_true", help="Output log lines as JSON")
    parser.add_argument("-v", dest="verbose", action="store_true", help="Output Verbose Detail")
    return parser


def _require(args: argparse.Namespace, flags: dict) -> None:
    missing = [flag for flag, dest in flags.items() if not (getattr(args, dest) or "").strip()]
    if missing:
        raise ValidationError(f"Missing required values for: {', '.join(missing)}")


def _usage_error(parser: argparse.ArgumentParser, exc: ValidationError) -> int:
    parser.print_help(sys.stderr)
    print(f"\n{parser.prog}: error: {exc}", file=sys.stderr)
    return 1


def _log_header(logger: Logger, prog: str, arguments: dict) -> None:
    logger.info(f"{prog} {__version__}")
    logger.info("Arguments")
    for name, value in arguments.items():
        logger.info("...", **{name: value})


def _execute(
    logger: Logger,
    config: PredictionConfig,
    load: Callable[[], List[UserEventRecord]],
    service_options: dict,
) -> int:
    logger.info("Begin")
    try:
        user_events = load()
        PredictionService(config, logger, **service_options).run(user_events)
    except PredictionError as exc:
        logger.error("Run Aborted", kind=type(exc).__name__, error=str(exc))
        return 1
    logger.info("End")
    return 0


def main_single(argv: Optional[Sequence[str]] = None, **service_options) -> int:
    """Request predictions for one user event given entirely by flags."""
    parser = build_single_parser()
    try:
        args = parser.parse_args(argv)
        _require(args, {
            "-p": "project", "-s": "serving_config", "-type": "event_type", "-visitor": "visitor_id", "-product": "product_id",
        })
        config = PredictionConfig.from_arguments(
            project=args.project,
            location=args.location,
            catalog=args.catalog,
            branch=args.branch,
            serving_config=args.serving_config,
            page_size=args.number,
            filter=args.filter or None,
            experiment=args.experiment or None,
        )
        logger = Logger(parser.prog, verbose=args.verbose, json_lines=args.json)
        user_events = RequestBuilder(logger).from_arguments(
            args.event_type, args.visitor_id, args.product_id, experiment_id=config.experiment,
        )
    except ValidationError as exc:
        return _usage_error(parser, exc)

    _log_header(logger, parser.prog, {
        "project": config.project,
        "location": config.location,
        "catalog": config.catalog,
        "branch": config.branch or "",
        "serving_config": config.serving_config,
        "number_of_predictions": config.page_size,
        "event_type": args.event_type,
        "visitor_id": args.visitor_id,
        "product_id": args.product_id,
        "filter": config.filter or "",
        "experiment": config.experiment or "",
    })
    return _execute(logger, config, lambda: user_events, service_options)


def main_batch(argv: Optional[Sequence[str]] = None, **service_options) -> int:
    """Request predictions for every user event in a parameter input file."""
    parser = build_batch_parser()
    try:
        args = parser.parse_args(argv)
        _require(args, {"-p": "project", "-s": "serving_config", "-i": "input_file"})
        check_page_size(args.number)
        config = PredictionConfig.from_arguments(
            project=args.project,
            location=args.location,
            catalog=args.catalog,
            branch=args.branch,
            serving_config=args.serving_config,
            page_size=args.number,
            filter=args.filter or None,
        )
    except ValidationError as exc:
        return _usage_error(parser, exc)

    logger = Logger(parser.prog, verbose=args.verbose, json_lines=args.json)
    _log_header(logger, parser.prog, {
        "project": config.project,
        "location": config.location,
        "catalog": config.catalog,
        "branch": config.branch,
        "serving_config": config.serving_config,
        "input_file": args.input_file,
        "number_of_predictions": config.page_size,
        "filter": config.filter or "",
    })
    builder = RequestBuilder(logger)
    return _execute(logger, config, lambda: builder.from_file(args.input_file, config.page_size), service_options)


if __name__ == "__main__":
    raise SystemExit(main_batch())
