"""split-analytics CLI — installation self-test, API check and UA detection."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from .client import test_installation
from .detector import classify
from .report import format_detection_json, print_detection, print_installation_report


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Log tracker activity to stderr.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """AI crawler analytics for Python web apps."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        )


@main.command("test")
def test_command() -> None:
    """Check that the package imports and detects crawlers."""
    report = asyncio.run(test_installation())
    print_installation_report(report)
    sys.exit(0 if report.ok else 1)


@main.command("test-api")
@click.argument("api_key")
@click.option("--endpoint", default=None, help="Override the collector endpoint URL.")
@click.pass_context
def test_api_command(ctx: click.Context, api_key: str, endpoint: str | None) -> None:
    """Check connectivity and key validity against the Split API."""
    report = asyncio.run(
        test_installation(api_key=api_key, api_endpoint=endpoint, debug=ctx.obj["verbose"])
    )
    print_installation_report(report, api_key=api_key)
    sys.exit(0 if report.ok else 1)


@main.command("detect")
@click.argument("user_agent")
@click.option("--json", "json_output", is_flag=True, help="Output the result as JSON.")
def detect_command(user_agent: str, json_output: bool) -> None:
    """Classify a User-Agent string."""
    result = classify(user_agent)
    if json_output:
        click.echo(format_detection_json(result))
    else:
        print_detection(result)


if __name__ == "__main__":
    main()
