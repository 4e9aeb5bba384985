"""MFA CLI - offline scoring, weight derivation and the API server.

Usage:
    python -m mfa score [--input PATH | --template]
    python -m mfa derive-weights [--input PATH]
    python -m mfa serve [--host HOST] [--port PORT]

Input formats:
    score:          {"attributes": [...], "scenarios": [...], "weights": [...]?}
                    (weights, when given, are 0-100 and total 100)
    derive-weights: {"matrix": [[...], ...]}
                    or {"attributes": N | [...], "judgments": [{"i", "j", "slider"}]}

Exit codes:
    0: Success
    1: Internal error (unexpected)
    2: Invalid input or domain error
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from pydantic import ConfigDict, TypeAdapter, ValidationError

from mfa.analysis.defaults import default_analysis_template
from mfa.models.analysis import Attribute, Scenario
from mfa.scoring.engine import ShapeMismatchError, compute_results
from mfa.scoring.pairwise import InvalidJudgmentError, PairwiseMatrix
from mfa.scoring.ranker import rating_label, top_recommendation
from mfa.scoring.weights import WeightBoundsError, derive_weights, validate_manual_weights

logger = logging.getLogger(__name__)

_ATTRIBUTES_ADAPTER: TypeAdapter[list[Attribute]] = TypeAdapter(list[Attribute])
_SCENARIOS_ADAPTER: TypeAdapter[list[Scenario]] = TypeAdapter(list[Scenario])
_WEIGHTS_ADAPTER: TypeAdapter[list[int]] = TypeAdapter(list[int], config=ConfigDict(strict=True))

DOMAIN_ERRORS = (ShapeMismatchError, InvalidJudgmentError, WeightBoundsError)


class InputError(Exception):
    """Raised when CLI input is missing, unreadable or has the wrong shape."""

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


def _output_json(data: dict[str, Any]) -> None:
    """Output JSON to stdout with deterministic ordering."""
    print(json.dumps(data, sort_keys=True, indent=2))


def _make_error(code: str, message: str) -> dict[str, Any]:
    return {"error": {"code": code, "message": message}}


def _load_json_input(input_path: str | None) -> Any:
    """Load JSON from a file, or stdin when no path is given.

    Raises:
        InputError: If the input is empty, missing or not valid JSON.
    """
    try:
        if input_path:
            with open(input_path, encoding="utf-8") as f:
                content = f.read()
        else:
            content = sys.stdin.read()
    except FileNotFoundError as e:
        raise InputError("FILE_NOT_FOUND", f"File not found: {input_path}") from e
    except OSError as e:
        raise InputError("UNREADABLE_INPUT", f"Cannot read input: {e}") from e

    if not content.strip():
        raise InputError("EMPTY_INPUT", "Empty input")

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise InputError("INVALID_JSON", f"Invalid JSON: {e}") from e


def _require_object(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise InputError("INVALID_INPUT", "Input must be a JSON object")
    return data


def _validate(adapter: TypeAdapter[Any], name: str, value: Any) -> Any:
    try:
        return adapter.validate_python(value)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        where = f"{name}.{location}" if location else name
        raise InputError("INVALID_INPUT", f"{where}: {first['msg']}") from e


def cmd_score(args: argparse.Namespace) -> int:
    """Score and rank scenarios.

    Exit codes:
        0: Results printed
        2: Invalid input or shape mismatch
    """
    if args.template:
        template = default_analysis_template()
        attributes, scenarios = template.attributes, template.scenarios
        weights = [attribute.weight for attribute in attributes]
    else:
        data = _require_object(_load_json_input(args.input))
        if "attributes" not in data or "scenarios" not in data:
            raise InputError("INVALID_INPUT", "Input needs 'attributes' and 'scenarios'")
        attributes = _validate(_ATTRIBUTES_ADAPTER, "attributes", data["attributes"])
        scenarios = _validate(_SCENARIOS_ADAPTER, "scenarios", data["scenarios"])
        if data.get("weights") is None:
            weights = [attribute.weight for attribute in attributes]
        else:
            weights = _validate(_WEIGHTS_ADAPTER, "weights", data["weights"])
            validate_manual_weights(weights)

    results = compute_results(attributes, scenarios, weights)
    top = top_recommendation(results)
    _output_json(
        {
            "active_weights": weights,
            "results": [
                {
                    **result.to_document(),
                    "ratingLabels": [rating_label(rating) for rating in result.ratings],
                }
                for result in results
            ],
            "top_scenario_id": top.id if top is not None else None,
        }
    )
    return 0


def _matrix_from_input(data: dict[str, Any]) -> PairwiseMatrix:
    if data.get("matrix") is not None:
        rows = data["matrix"]
        if not isinstance(rows, list) or not all(isinstance(row, list) for row in rows):
            raise InputError("INVALID_INPUT", "'matrix' must be a list of rows")
        return PairwiseMatrix.from_rows(rows)

    attributes = data.get("attributes")
    if isinstance(attributes, bool) or not isinstance(attributes, int | list):
        raise InputError("INVALID_INPUT", "Input needs 'matrix' or 'attributes'")
    size = attributes if isinstance(attributes, int) else len(attributes)
    if size < 0:
        raise InputError("INVALID_INPUT", "'attributes' must not be negative")

    matrix = PairwiseMatrix(size)
    for position, judgment in enumerate(data.get("judgments") or []):
        if not isinstance(judgment, dict) or not {"i", "j", "slider"} <= judgment.keys():
            raise InputError(
                "INVALID_INPUT", f"judgments.{position} needs 'i', 'j' and 'slider'"
            )
        matrix.set_judgment(judgment["i"], judgment["j"], judgment["slider"])
    return matrix


def cmd_derive_weights(args: argparse.Namespace) -> int:
    """Derive weights from a pairwise matrix or a list of judgments.

    Exit codes:
        0: Weights printed
        2: Invalid input or judgment
    """
    data = _require_object(_load_json_input(args.input))
    matrix = _matrix_from_input(data)
    weights = derive_weights(matrix)
    _output_json({"matrix": matrix.rows(), "weights": weights})
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from mfa.api.main import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port, log_level="info")
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="mfa",
        description="MFA - multi-factor decision scoring",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Log debug output to stderr",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    score_parser = subparsers.add_parser(
        "score",
        help="Score and rank scenarios from JSON input",
    )
    score_source = score_parser.add_mutually_exclusive_group()
    score_source.add_argument(
        "--input",
        default=None,
        metavar="PATH",
        help="Path to JSON file (reads from stdin if omitted)",
    )
    score_source.add_argument(
        "--template",
        action="store_true",
        default=False,
        help="Score the default attributes and scenarios",
    )
    score_parser.set_defaults(handler=cmd_score)

    derive_parser = subparsers.add_parser(
        "derive-weights",
        help="Derive attribute weights from pairwise judgments",
    )
    derive_parser.add_argument(
        "--input",
        default=None,
        metavar="PATH",
        help="Path to JSON file (reads from stdin if omitted)",
    )
    derive_parser.set_defaults(handler=cmd_derive_weights)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP API",
    )
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")
    serve_parser.set_defaults(handler=cmd_serve)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Exit codes:
        0: Success
        1: Internal error (unexpected)
        2: Invalid input or domain error
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    if args.command is None:
        parser.print_help()
        return 0

    try:
        exit_code: int = args.handler(args)
        return exit_code
    except InputError as e:
        _output_json(_make_error(e.code, e.message))
        return 2
    except DOMAIN_ERRORS as e:
        _output_json(_make_error(type(e).__name__, str(e)))
        return 2
    except Exception as e:
        logger.debug("Unexpected CLI failure", exc_info=True)
        _output_json(_make_error("INTERNAL_ERROR", str(e)))
        return 1


if __name__ == "__main__":
    sys.exit(main())
