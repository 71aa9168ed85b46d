"""CLI entry point for oas-graphql."""

import asyncio
import json
import logging
from pathlib import Path

import click
from graphql import print_schema

from oas_graphql.errors import OasGraphQLError
from oas_graphql.oas.loader import load_document
from oas_graphql.options import Options
from oas_graphql.translate import create_graphql_schema, execute


def _translation_options(func):
    """Options shared by the commands that translate documents."""
    decorators = [
        click.argument("doc_paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path)),
        click.option("--strict", is_flag=True, help="Fail on the first translation warning."),
        click.option("--fill-empty-responses", is_flag=True, help="Keep operations without response schema."),
        click.option("--add-limit-argument", is_flag=True, help="Add a 'limit' argument to list fields."),
        click.option("--operation-id-field-names", is_flag=True, help="Name query fields after operationIds."),
        click.option("--no-viewer", is_flag=True, help="Do not group authenticated operations in viewers."),
        click.option("--base-url", default=None, help="Call the API at this URL instead of its servers."),
        click.option("-v", "--verbose", is_flag=True, help="Log translation and HTTP details."),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _translate(doc_paths, strict, fill_empty_responses, add_limit_argument,
               operation_id_field_names, no_viewer, base_url, verbose):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    options = Options(
        strict=strict,
        fill_empty_responses=fill_empty_responses,
        add_limit_argument=add_limit_argument,
        operation_id_field_names=operation_id_field_names,
        viewer=not no_viewer,
        base_url=base_url,
    )
    try:
        documents = [load_document(path) for path in doc_paths]
        return create_graphql_schema(documents, options)
    except OasGraphQLError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
def main():
    """oas-graphql: serve REST APIs described by OpenAPI as GraphQL."""
    pass


@main.command()
@_translation_options
@click.option("-o", "--output", default=None, type=click.Path(path_type=Path), help="Write the SDL to this file.")
def schema(output: Path | None, **kwargs):
    """Translate OpenAPI documents and print the GraphQL schema."""
    graphql_schema, report = _translate(**kwargs)
    sdl = print_schema(graphql_schema)

    if output is None:
        click.echo(sdl)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(sdl + "\n", encoding="utf-8")
        click.echo(f"Schema saved to {output}")

    click.echo(
        f"{report.num_queries_created} queries and {report.num_mutations_created} mutations "
        f"from {report.num_ops} operations, {len(report.warnings)} warnings.",
        err=True,
    )
    for warning in report.warnings:
        click.echo(f"  {warning.type}: {warning.message}", err=True)


@main.command()
@_translation_options
@click.option("-q", "--query", "query_text", required=True, help="GraphQL query to run.")
@click.option("--variables", default=None, help="Query variables as JSON.")
def query(query_text: str, variables: str | None, **kwargs):
    """Translate OpenAPI documents and run a query against the API."""
    graphql_schema, _ = _translate(**kwargs)
    try:
        variable_values = json.loads(variables) if variables else None
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="--variables") from exc

    result = asyncio.run(execute(graphql_schema, query_text, variable_values))
    click.echo(json.dumps(result.formatted, indent=2))
    if result.errors:
        raise SystemExit(1)
