"""CLI interface for restretry"""

import json
import logging
import random
import sys
from pathlib import Path
from typing import Dict, Optional, Tuple

import click

from restretry.application.retry_client import RetryClient
from restretry.domain.config import BackoffKind, HttpConfig, RetryConfiguration
from restretry.domain.errors import ConfigurationError, RequestBodyError
from restretry.domain.models.attempt_outcome import AttemptOutcome
from restretry.domain.retry.backoff import delay_schedule
from restretry.infrastructure.config.config_manager import ConfigManager

logger = logging.getLogger(__name__)

BACKOFF_CHOICES = [kind.value for kind in BackoffKind]
BODY_METHODS = ("POST", "PUT", "PATCH", "DELETE")


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def parse_params(values: Tuple[str, ...]) -> Dict[str, str]:
    """Parse KEY=VALUE pairs into a dict

    Raises:
        click.BadParameter: If a pair has no "="
    """
    params = {}
    for item in values:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"Expected KEY=VALUE, got: {item}", param_hint="--param")
        params[key] = value
    return params


def _output_outcome(outcome: AttemptOutcome) -> None:
    """Print status, success flag, content and error"""
    status = outcome.status_code if outcome.status_code is not None else "-"
    click.echo(f"Status Code: {status}")
    click.echo(f"Is Successful: {outcome.is_successful}")
    click.echo(f"Content: {outcome.content or ''}")
    if not outcome.is_successful:
        click.echo(f"Error Message: {outcome.error}", err=True)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .restretry.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """restretry - REST client with retry on transient failures"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("method", type=click.Choice(["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"], case_sensitive=False))
@click.argument("base_url")
@click.argument("resource")
@click.option("--data", "-d", type=str, help="JSON request body (POST/PUT/PATCH/DELETE)")
@click.option("--param", "-p", "params", multiple=True, help="Query parameter KEY=VALUE (GET, repeatable)")
@click.option("--max-attempts", type=click.IntRange(min=0), help="Retries after the first attempt. Overrides config.")
@click.option("--base-delay", type=click.FloatRange(min=0.0), help="Base delay in seconds. Overrides config.")
@click.option("--backoff", type=click.Choice(BACKOFF_CHOICES, case_sensitive=False), help="Backoff kind. Overrides config.")
@click.option("--timeout", type=click.FloatRange(min=0.0, min_open=True), help="Request timeout in seconds. Overrides config.")
@click.pass_context
def request(
    ctx,
    method: str,
    base_url: str,
    resource: str,
    data: Optional[str],
    params: Tuple[str, ...],
    max_attempts: Optional[int],
    base_delay: Optional[float],
    backoff: Optional[str],
    timeout: Optional[float],
):
    """Send a request with retry.

    METHOD: HTTP method
    BASE_URL: Base URL, e.g. https://jsonplaceholder.typicode.com
    RESOURCE: Resource path, e.g. posts/1
    """
    verbose = ctx.obj.get("verbose", False)
    method = method.upper()

    try:
        config_manager = ConfigManager(config_path=ctx.obj.get("config_path"))
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)

    retry_config = config_manager.get_retry_config()
    http_config = config_manager.get_http_config()
    if timeout is not None:
        http_config = HttpConfig(**{**http_config.model_dump(), "timeout": timeout})

    query = parse_params(params)
    body = None
    if method in BODY_METHODS:
        try:
            body = json.loads(data) if data is not None else {}
        except json.JSONDecodeError as e:
            _die(f"Invalid JSON for --data: {e}", verbose=verbose, exc=e)
    elif data is not None:
        _die(f"--data is not supported for {method}")

    try:
        client = RetryClient(
            base_url,
            resource,
            max_attempts=retry_config.max_attempts if max_attempts is None else max_attempts,
            base_delay=retry_config.base_delay if base_delay is None else base_delay,
            backoff=retry_config.backoff if backoff is None else backoff,
            http=http_config,
        )
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)

    logger.info(
        f"{method} {base_url} {resource} "
        f"(max_attempts={client.max_attempts}, base_delay={client.base_delay}s, backoff={client.backoff.value})"
    )

    try:
        with client:
            if method == "GET":
                outcome = client.get(query or None)
            elif method == "OPTIONS":
                outcome = client.options()
            else:
                outcome = getattr(client, method.lower())(body)
    except RequestBodyError as e:
        _die(str(e), verbose=verbose, exc=e)

    _output_outcome(outcome)
    if not outcome.is_successful:
        sys.exit(1)


@cli.command()
@click.option("--backoff", type=click.Choice(BACKOFF_CHOICES, case_sensitive=False), default="constant", show_default=True)
@click.option("--base-delay", type=click.FloatRange(min=0.0), default=1.0, show_default=True)
@click.option("--max-delay", type=click.FloatRange(min=0.0, min_open=True), default=30.0, show_default=True)
@click.option("--attempts", type=click.IntRange(min=0), default=5, show_default=True, help="Number of retries")
@click.option("--seed", type=int, help="Seed for randomized kinds")
def delays(backoff: str, base_delay: float, max_delay: float, attempts: int, seed: Optional[int]):
    """Print the delay before each retry for a backoff policy"""
    config = RetryConfiguration(
        max_attempts=attempts,
        base_delay=base_delay,
        backoff=BackoffKind.parse(backoff),
        max_delay=max_delay,
    )
    rng = random.Random(seed) if seed is not None else None
    schedule = delay_schedule(config, rng=rng)
    if not schedule:
        click.echo("No retries")
        return
    for index, delay in enumerate(schedule):
        click.echo(f"retry {index + 1}: {delay:.3f}s")
    click.echo(f"total: {sum(schedule):.3f}s")


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
