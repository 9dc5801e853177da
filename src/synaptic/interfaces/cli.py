from __future__ import annotations

import importlib
import logging
from typing import Any, NoReturn

import typer
from pydantic import BaseModel
from rich.console import Console

from synaptic.application.config import AppSettings
from synaptic.application.hooks import HookBus
from synaptic.application.pipeline import Option
from synaptic.application.ports import Provider
from synaptic.application.schema import generate_schema
from synaptic.application.synapses.binary import BinarySynapse
from synaptic.application.synapses.classification import ClassificationSynapse
from synaptic.application.synapses.ranking import RankingSynapse
from synaptic.application.synapses.sentiment import SentimentSynapse
from synaptic.application.synapses.transform import TransformSynapse
from synaptic.domain.errors import SynapseError
from synaptic.domain.models import (
    BinaryInput,
    ClassificationInput,
    RankingInput,
    SentimentInput,
    TransformInput,
)
from synaptic.infrastructure.provider_factory import build_provider, build_reliability_options

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Typed, schema-validated LLM calls from the command line.",
)
console = Console()


def _build_dependencies(model: str | None) -> tuple[Provider, list[Option], HookBus]:
    settings = AppSettings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    provider = build_provider(settings, model=model)
    hooks = HookBus(max_workers=settings.hook_workers)
    return provider, build_reliability_options(settings), hooks


def _fail(error: SynapseError) -> NoReturn:
    typer.secho(str(error), fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from error


def _print_result(result: Any) -> None:
    if isinstance(result, BaseModel):
        console.print_json(result.model_dump_json(), indent=2)
    elif isinstance(result, (list, dict)):
        console.print_json(data=result, indent=2)
    else:
        console.print(result)


def _load_model(target: str) -> type[BaseModel]:
    module_name, _, class_name = target.partition(":")
    if not module_name or not class_name:
        raise typer.BadParameter("expected MODULE:CLASS, for example `myapp.models:Invoice`")
    try:
        module = importlib.import_module(module_name)
    except ImportError as error:
        raise typer.BadParameter(f"cannot import module {module_name!r}: {error}") from error
    model = getattr(module, class_name, None)
    if model is None:
        raise typer.BadParameter(f"module {module_name!r} has no attribute {class_name!r}")
    return model


@app.command("schema")
def print_schema(
    target: str = typer.Argument(..., help="Pydantic model to describe, as MODULE:CLASS."),
) -> None:
    """Print the JSON schema a synapse would send for a result type."""

    model = _load_model(target)
    try:
        schema = generate_schema(model)
    except SynapseError as error:
        _fail(error)
    console.print_json(schema, indent=2)


@app.command("binary")
def binary(
    question: str = typer.Argument(..., help="What to decide, e.g. 'the email is spam'."),
    subject: str = typer.Argument(..., help="Text the decision is about."),
    criterion: list[str] = typer.Option([], "--criterion", "-c", help="Extra criterion to evaluate."),
    temperature: float | None = typer.Option(None, min=0.0, max=2.0, help="Sampling temperature."),
    model: str | None = typer.Option(None, help="LLM model override."),
    details: bool = typer.Option(False, help="Print the full structured response."),
) -> None:
    try:
        provider, options, hooks = _build_dependencies(model)
        synapse = BinarySynapse(question, provider, *options, hooks=hooks)
        call_input = BinaryInput(subject=subject, criteria=criterion, temperature=temperature)
        with console.status("Deciding"):
            if details:
                result: Any = synapse.fire_with_input_details(call_input)
            else:
                result = synapse.fire_with_input(call_input)
    except SynapseError as error:
        _fail(error)
    _print_result(result)


@app.command("classify")
def classify(
    question: str = typer.Argument(..., help="Classification question."),
    subject: str = typer.Argument(..., help="Text to classify."),
    category: list[str] = typer.Option(..., "--category", "-k", help="Allowed category (repeatable)."),
    temperature: float | None = typer.Option(None, min=0.0, max=2.0, help="Sampling temperature."),
    model: str | None = typer.Option(None, help="LLM model override."),
    details: bool = typer.Option(False, help="Print the full structured response."),
) -> None:
    try:
        provider, options, hooks = _build_dependencies(model)
        synapse = ClassificationSynapse(question, category, provider, *options, hooks=hooks)
        call_input = ClassificationInput(subject=subject, temperature=temperature)
        with console.status("Classifying"):
            if details:
                result: Any = synapse.fire_with_input_details(call_input)
            else:
                result = synapse.fire_with_input(call_input)
    except SynapseError as error:
        _fail(error)
    _print_result(result)


@app.command("rank")
def rank(
    criteria: str = typer.Argument(..., help="What to rank by, e.g. 'urgency'."),
    items: list[str] = typer.Argument(..., help="Items to rank."),
    top_n: int | None = typer.Option(None, min=1, help="Only return the top N items."),
    temperature: float | None = typer.Option(None, min=0.0, max=2.0, help="Sampling temperature."),
    model: str | None = typer.Option(None, help="LLM model override."),
    details: bool = typer.Option(False, help="Print the full structured response."),
) -> None:
    try:
        provider, options, hooks = _build_dependencies(model)
        synapse = RankingSynapse(criteria, provider, *options, hooks=hooks)
        call_input = RankingInput(items=items, top_n=top_n, temperature=temperature)
        with console.status("Ranking"):
            if details:
                result: Any = synapse.fire_with_input_details(call_input)
            else:
                result = synapse.fire_with_input(call_input)
    except SynapseError as error:
        _fail(error)
    _print_result(result)


@app.command("sentiment")
def sentiment(
    text: str = typer.Argument(..., help="Text to analyse."),
    analysis_type: str = typer.Option("general", "--type", help="Kind of sentiment, e.g. 'customer'."),
    aspect: list[str] = typer.Option([], "--aspect", "-a", help="Aspect to score separately."),
    temperature: float | None = typer.Option(None, min=0.0, max=2.0, help="Sampling temperature."),
    model: str | None = typer.Option(None, help="LLM model override."),
    details: bool = typer.Option(False, help="Print the full structured response."),
) -> None:
    try:
        provider, options, hooks = _build_dependencies(model)
        synapse = SentimentSynapse(analysis_type, provider, *options, hooks=hooks)
        call_input = SentimentInput(text=text, aspects=aspect, temperature=temperature)
        with console.status("Analysing sentiment"):
            if details:
                result: Any = synapse.fire_with_input_details(call_input)
            else:
                result = synapse.fire_with_input(call_input)
    except SynapseError as error:
        _fail(error)
    _print_result(result)


@app.command("transform")
def transform(
    instruction: str = typer.Argument(..., help="How to transform the text."),
    text: str = typer.Argument(..., help="Text to transform."),
    style: str = typer.Option("", help="Target style."),
    max_length: int | None = typer.Option(None, min=1, help="Maximum output length in characters."),
    temperature: float | None = typer.Option(None, min=0.0, max=2.0, help="Sampling temperature."),
    model: str | None = typer.Option(None, help="LLM model override."),
    details: bool = typer.Option(False, help="Print the full structured response."),
) -> None:
    try:
        provider, options, hooks = _build_dependencies(model)
        synapse = TransformSynapse(instruction, provider, *options, hooks=hooks)
        call_input = TransformInput(text=text, style=style, max_length=max_length, temperature=temperature)
        with console.status("Transforming"):
            if details:
                result: Any = synapse.fire_with_input_details(call_input)
            else:
                result = synapse.fire_with_input(call_input)
    except SynapseError as error:
        _fail(error)
    _print_result(result)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
