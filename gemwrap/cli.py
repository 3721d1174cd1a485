"""Command line interface for gemwrap."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import configured_max_tokens, describe_config, load_app_config
from .core import AppConfig, ConfigurationError, GemwrapError, GenerationRequest, GenerationResult, UsageSummary
from .core.models import DEFAULT_MODEL
from .llm import GeminiClient
from .optimization import DEFAULT_RESERVED_TOKENS, estimate_prompt_cost, estimate_tokens, validate_token_limit
from .usage import InMemoryUsageSink, UsageRecorder
from .utils import configure_logging, get_logger

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
console = Console()


def _resolve_env_file(config_file: Optional[str]) -> Optional[str]:
    if not config_file:
        return None
    path = Path(config_file)
    if path.is_dir():
        raise click.ClickException("Configuration file path must point to a file, not a directory.")
    return str(path)


def _get_logger(ctx: click.Context) -> logging.Logger:
    if ctx.obj is None:
        ctx.obj = {}
    logger = ctx.obj.get("logger")
    if logger is None:
        logger = get_logger(__name__)
        ctx.obj["logger"] = logger
    return logger


def _load_config(ctx: click.Context) -> AppConfig:
    if ctx.obj is None:
        ctx.obj = {}
    if "config" not in ctx.obj:
        try:
            ctx.obj["config"] = load_app_config(env_file=ctx.obj.get("config_file"))
        except ConfigurationError as exc:
            _get_logger(ctx).error("Configuration loading failed", exc_info=exc)
            raise click.ClickException(f"Configuration error: {exc.message}") from exc
        if ctx.obj["config"].gemini.debug:
            # Usage records are logged at INFO and must show at any CLI log level.
            configure_logging(
                level=ctx.obj.get("log_level", "WARNING"),
                log_file=ctx.obj.get("log_file"),
                debug=True,
                force=True,
            )
    return ctx.obj["config"]


def _build_client(ctx: click.Context, usage_sink: Optional[InMemoryUsageSink] = None) -> GeminiClient:
    config = _load_config(ctx)
    recorder = UsageRecorder(usage_sink, enabled=True) if usage_sink is not None else None
    try:
        return GeminiClient(config.gemini, usage_recorder=recorder)
    except ConfigurationError as exc:
        raise click.ClickException(f"Configuration error: {exc.message}") from exc


def _read_prompts(path: str) -> List[str]:
    with open(path, "r", encoding="utf-8") as handle:
        return [line.strip() for line in handle if line.strip()]


async def _run_generate(client: GeminiClient, request: GenerationRequest) -> GenerationResult:
    async with client:
        return await client.generate(request)


async def _run_batch(client: GeminiClient, prompts: Sequence[str], batch_size: int) -> List[GenerationResult]:
    async with client:
        return await client.generate_batch(prompts, batch_size=batch_size)


async def _run_health(client: GeminiClient) -> bool:
    async with client:
        return await client.health_check()


def _print_summary(summary: UsageSummary) -> None:
    table = Table(title="Usage Summary")
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Requests", str(summary.total_requests))
    table.add_row("Success rate", f"{summary.success_rate:.1f}%")
    table.add_row("Avg latency (ms)", f"{summary.average_latency_ms:.0f}")
    table.add_row("Total tokens", str(summary.total_tokens))
    table.add_row("Avg tokens/request", f"{summary.average_tokens_per_request:.1f}")
    console.print(table)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.option(
    "--config-file",
    type=click.Path(path_type=str, dir_okay=False, resolve_path=True),
    default=None,
    help="Optional path to a .env file that should be loaded before running commands.",
)
@click.option(
    "--log-level",
    type=click.Choice(["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Log level to use for this invocation.",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=str, dir_okay=False),
    default=None,
    help="Write logs to this file in addition to stderr.",
)
@click.version_option(__version__, prog_name="gemwrap")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str], log_level: str, log_file: Optional[str]) -> None:
    """gemwrap command-line interface."""

    ctx.ensure_object(dict)
    ctx.obj["config_file"] = _resolve_env_file(config_file)
    ctx.obj["log_level"] = log_level
    ctx.obj["log_file"] = log_file

    configure_logging(level=log_level, log_file=log_file, force=True)
    _get_logger(ctx).debug("Starting gemwrap CLI", extra={"config_file": ctx.obj["config_file"]})


@cli.command(name="validate-config")
@click.pass_context
def validate_config(ctx: click.Context) -> None:
    """Validate gemwrap environment configuration."""

    config = _load_config(ctx)
    console.print(Panel.fit("Configuration validated successfully", border_style="green"))
    console.print(
        f"Gemini model: [bold]{config.gemini.model}[/bold]\n"
        f"Max tokens: [bold]{config.gemini.max_tokens}[/bold]\n"
        f"Timeout: [bold]{config.gemini.timeout_ms}ms[/bold]"
    )
    _get_logger(ctx).info("Configuration validation succeeded")


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Display active configuration summary (without secrets)."""

    config = _load_config(ctx)
    lines = [f"{key}: [cyan]{value}[/cyan]" for key, value in describe_config(config.gemini).items()]
    lines.append(f"log_level: [cyan]{config.log_level}[/cyan]")
    console.print(Panel("\n".join(lines), title="gemwrap Configuration"))


@cli.command(name="tokens")
@click.argument("texts", nargs=-1, required=True)
@click.option(
    "--max-tokens",
    type=int,
    default=None,
    help="Token ceiling to check against. Defaults to GEMINI_MAX_TOKENS or the model default.",
)
@click.option(
    "--reserved",
    type=int,
    default=DEFAULT_RESERVED_TOKENS,
    show_default=True,
    help="Tokens kept free for the model's output.",
)
@click.pass_context
def tokens_command(ctx: click.Context, texts: Tuple[str, ...], max_tokens: Optional[int], reserved: int) -> None:
    """Estimate tokens for each TEXT. No API key or network access is needed."""

    if max_tokens is None:
        try:
            max_tokens = configured_max_tokens(env_file=ctx.obj.get("config_file"))
        except ConfigurationError as exc:
            raise click.ClickException(f"Configuration error: {exc.message}") from exc

    table = Table(title="Token Estimates")
    table.add_column("Text")
    table.add_column("Chars", justify="right")
    table.add_column("Tokens", justify="right")
    table.add_column("Fits", justify="center")

    for text in texts:
        estimated = estimate_tokens(text)
        fits = validate_token_limit(estimated, max_tokens, reserved)
        preview = text if len(text) <= 40 else text[:37] + "..."
        table.add_row(preview, str(len(text)), str(estimated), "[green]yes[/green]" if fits else "[red]no[/red]")

    console.print(table)


@cli.command(name="estimate-cost")
@click.argument("prompt")
@click.option("--model", default=DEFAULT_MODEL, show_default=True, help="Model whose pricing is used.")
@click.option("--max-tokens", type=int, default=8192, show_default=True, help="Cap on the estimated output tokens.")
def estimate_cost_command(prompt: str, model: str, max_tokens: int) -> None:
    """Estimate the USD cost of sending PROMPT. No network access is needed."""

    if max_tokens <= 0:
        raise click.BadParameter("--max-tokens must be greater than 0")

    breakdown = estimate_prompt_cost(prompt, model, max_tokens)
    console.print(
        f"Input tokens: {breakdown.input_tokens}\n"
        f"Output tokens (est.): {breakdown.output_tokens}\n"
        f"Estimated cost: ${breakdown.total_cost_usd:.8f} ({model})"
    )


@cli.command(name="generate")
@click.argument("prompt")
@click.option("--max-output-tokens", type=int, default=None, help="Upper bound on generated tokens.")
@click.option("--temperature", type=float, default=None, help="Sampling temperature (0-2).")
@click.option("--top-p", type=float, default=None, help="Nucleus sampling probability mass (0-1).")
@click.option("--stop", "stop_sequences", multiple=True, help="Stop sequence; may be repeated.")
@click.pass_context
def generate_command(
    ctx: click.Context,
    prompt: str,
    max_output_tokens: Optional[int],
    temperature: Optional[float],
    top_p: Optional[float],
    stop_sequences: Tuple[str, ...],
) -> None:
    """Generate text for PROMPT with Gemini."""

    logger = _get_logger(ctx)
    try:
        request = GenerationRequest(
            prompt=prompt,
            max_output_tokens=max_output_tokens,
            temperature=temperature,
            top_p=top_p,
            stop_sequences=stop_sequences or None,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc

    client = _build_client(ctx)
    try:
        result = asyncio.run(_run_generate(client, request))
    except GemwrapError as exc:
        logger.error("Generation failed", extra={"error_code": exc.error_code})
        raise click.ClickException(exc.user_message) from exc

    console.print(result.text)
    console.print(
        f"Tokens: {result.tokens.input} in / {result.tokens.output} out "
        f"(finish reason: {result.finish_reason.value})",
        style="dim",
    )


@cli.command(name="batch")
@click.argument("prompts_file", type=click.Path(exists=True, dir_okay=False, path_type=str))
@click.option("--batch-size", type=int, default=5, show_default=True, help="Requests sent concurrently per group.")
@click.pass_context
def batch_command(ctx: click.Context, prompts_file: str, batch_size: int) -> None:
    """Generate text for every non-empty line of PROMPTS_FILE."""

    logger = _get_logger(ctx)
    if batch_size <= 0:
        raise click.BadParameter("--batch-size must be greater than 0")

    prompts = _read_prompts(prompts_file)
    if not prompts:
        raise click.ClickException("No prompts found in file.")

    sink = InMemoryUsageSink()
    client = _build_client(ctx, usage_sink=sink)
    try:
        results = asyncio.run(_run_batch(client, prompts, batch_size))
    except GemwrapError as exc:
        logger.error("Batch generation failed", extra={"error_code": exc.error_code})
        _print_summary(sink.summary())
        raise click.ClickException(exc.user_message) from exc

    for index, (prompt, result) in enumerate(zip(prompts, results), start=1):
        console.print(Panel(result.text, title=f"[{index}] {prompt[:60]}"))
    _print_summary(sink.summary())


@cli.command(name="health")
@click.pass_context
def health_command(ctx: click.Context) -> None:
    """Check that Gemini answers a tiny test prompt."""

    client = _build_client(ctx)
    healthy = asyncio.run(_run_health(client))
    if not healthy:
        console.print("[bold red]Gemini is unhealthy[/bold red]")
        ctx.exit(1)
    console.print("[bold green]Gemini is healthy[/bold green]")


if __name__ == "__main__":  # pragma: no cover
    cli(obj={})
