#!/usr/bin/env python3
"""
Command line access to prompt template invocation.

Usage:
    prompt-client invoke Case_Classification -i Input:Case=500xx000000001
    prompt-client invoke Case_Classification -i Input:Case=500xx000000001 --preview
    prompt-client invoke Case_Classification -i Input:Case=500xx000000001 -e caseType -e reason
    prompt-client apply Case_Classification 500xx000000001
"""

import asyncio
import json
import sys
from typing import Any

import click
from loguru import logger

from prompt_client.client import PromptInvocationClient
from prompt_client.configuration import setup_config_store
from prompt_client.errors import PromptClientError
from prompt_client.models import GenerationResult, TargetRecord
from prompt_client.response import parse_output
from prompt_client.templates import resolve_template_specification


def parse_inputs(values: tuple[str, ...]) -> dict[str, Any]:
    """NAME=VALUE pairs; a VALUE starting with '{' is read as a JSON object"""
    inputs: dict[str, Any] = {}
    for item in values:
        name, sep, value = item.rpartition("=")
        if not sep or not name:
            raise click.BadParameter(f"expected NAME=VALUE, got '{item}'", param_hint="--input")
        if value.startswith("{"):
            try:
                inputs[name] = json.loads(value)
            except json.JSONDecodeError as e:
                raise click.BadParameter(f"invalid JSON for '{name}': {e.msg}", param_hint="--input") from e
        else:
            inputs[name] = value
    return inputs


def generation_options(num_generations: int | None, temperature: float | None) -> dict[str, Any]:
    options: dict[str, Any] = {}
    if num_generations is not None:
        options["num_generations"] = num_generations
    if temperature is not None:
        options["temperature"] = temperature
    return options


@click.group()
@click.option("--config", "config_file", type=click.Path(exists=True, dir_okay=False), default=None, help="Configuration file (default: $CONFIG_FILE or config.yml)")
@click.option("--env-file", type=click.Path(dir_okay=False), default=None, help="Environment file (default: .env)")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(config_file: str | None, env_file: str | None, verbose: bool) -> None:
    """Invoke prompt templates"""
    setup_config_store(config_file, env_filename=env_file)
    if verbose:
        logger.remove()
        logger.add(sys.stderr, level="DEBUG")


@cli.command()
@click.argument("template_id")
@click.option("--input", "-i", "inputs", multiple=True, help="Template input as NAME=VALUE (repeatable)")
@click.option("--preview", is_flag=True, help="Resolve the prompt without generating")
@click.option("--num-generations", "-n", type=int, default=None, help="Number of generations")
@click.option("--temperature", "-t", type=float, default=None, help="Sampling temperature in [0, 1]")
@click.option("--expect", "-e", "expected_keys", multiple=True, help="Decode the first generation and require KEY (repeatable)")
@click.option("--timeout", type=float, default=None, help="Timeout in seconds")
def invoke(template_id: str, inputs: tuple[str, ...], preview: bool, num_generations: int | None, temperature: float | None, expected_keys: tuple[str, ...], timeout: float | None) -> None:
    """Invoke TEMPLATE_ID and print the generations as JSON"""

    async def run() -> dict[str, Any]:
        async with PromptInvocationClient.from_config() as client:
            result: GenerationResult = await client.invoke(
                template_id, parse_inputs(inputs), config=generation_options(num_generations, temperature), preview=preview, timeout=timeout
            )
        output: dict[str, Any] = {"template_id": template_id, "generations": result.texts}
        if result.prompt:
            output["prompt"] = result.prompt
        if expected_keys:
            output["output"] = parse_output(result, expected_keys).values
        return output

    try:
        click.echo(json.dumps(asyncio.run(run()), indent=2, ensure_ascii=False))
    except PromptClientError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


@cli.command()
@click.argument("template_id")
@click.argument("record_id")
@click.option("--timeout", type=float, default=None, help="Timeout in seconds")
def apply(template_id: str, record_id: str, timeout: float | None) -> None:
    """Invoke TEMPLATE_ID for RECORD_ID and write the output onto the record"""

    async def run() -> dict[str, Any]:
        field_map: dict[str, str] = resolve_template_specification(template_id).field_map
        async with PromptInvocationClient.from_config() as client:
            record: TargetRecord = await client.generate_for_record(template_id, record_id, timeout=timeout)
        return {"record_id": record_id, "fields": {name: record[name] for name in field_map.values() if name in record}}

    try:
        click.echo(json.dumps(asyncio.run(run()), indent=2, ensure_ascii=False))
    except PromptClientError as e:
        raise click.ClickException(f"{type(e).__name__}: {e}") from e


if __name__ == "__main__":
    cli()  # pylint: disable=no-value-for-parameter
