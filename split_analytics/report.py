"""Report formatter for the split-analytics CLI — terminal (rich) and JSON output."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markup import escape

from .client import InstallationReport, key_type
from .detector import DetectionResult, classify

SAMPLE_USER_AGENTS = [
    "Mozilla/5.0 (compatible; GPTBot/1.0; +https://openai.com/gptbot)",
    "ClaudeBot/1.0",
    "PerplexityBot/1.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
]


def _mark(ok: bool) -> str:
    return "[green]✅ Success[/]" if ok else "[red]❌ Failed[/]"


def detection_to_dict(result: DetectionResult) -> dict[str, Any]:
    return {
        "isAICrawler": result.is_ai_crawler,
        "crawler": result.crawler.to_dict() if result.crawler else None,
        "userAgent": result.user_agent,
    }


def format_detection_json(result: DetectionResult) -> str:
    return json.dumps(detection_to_dict(result), indent=2)


# ---------------------------------------------------------------------------
# Terminal output (rich)
# ---------------------------------------------------------------------------

def print_detection(result: DetectionResult) -> None:
    console = Console()
    if result.crawler is None:
        console.print("[dim]⚪ Not an AI crawler[/]")
        return
    info = result.crawler
    console.print(f"[bold]🤖 {escape(info.bot)}[/] — {escape(info.company)} ([cyan]{info.category.value}[/])")


def print_installation_report(report: InstallationReport, *, api_key: str = "") -> None:
    console = Console()

    console.print()
    console.print("[bold]🧪 split-analytics installation test[/]")
    console.print("[dim]" + "━" * 50 + "[/]")
    console.print(f"📦 Package import:     {_mark(report.package_import)}")
    console.print(f"🤖 Crawler detection:  {_mark(report.crawler_detection)}")

    if report.crawler_detection:
        console.print()
        for ua in SAMPLE_USER_AGENTS:
            info = classify(ua).crawler
            label = ua if len(ua) <= 40 else ua[:37] + "..."
            if info:
                console.print(f"   {escape(label)}: [green]detected[/] ({info.bot} - {info.company})")
            else:
                console.print(f"   {escape(label)}: [dim]not a crawler[/]")

    console.print()
    details = report.api_connection_details
    if details is None:
        console.print("🌐 API connection:     [dim]⚪ Not tested (no API key provided)[/]")
        console.print("   [dim]Run `split-analytics test-api YOUR_API_KEY` to check it.[/]")
    else:
        console.print(f"🌐 API connection:     {_mark(report.api_connection)}")
        console.print(f"   Status: {details.status}")
        if details.ok and details.connection:
            console.print(f"   Workspace: {escape(details.connection.workspace)}")
            console.print(f"   Plan: {details.connection.plan or 'N/A'}")
            console.print(f"   Key type: {key_type(api_key)}")
        elif details.message:
            console.print(f"   Error: [red]{escape(details.message)}[/]")

    console.print("[dim]" + "━" * 50 + "[/]")
    if report.ok:
        console.print("Result: [bold green]PASS[/]")
    else:
        console.print("Result: [bold red]FAIL[/]")
    console.print()
