#!/usr/bin/env python3
import logging
import os
import pathlib
import typer
import typing

from . import errors
from . import models
from . import pipeline


app = typer.Typer()
LOG = logging.getLogger()


@app.command()
def process(
    raw_dir: typing.Annotated[
        pathlib.Path, typer.Option(help="countries.json and states+cities.json folder")
    ] = pipeline.RAW_DIR,
    out_dir: typing.Annotated[
        pathlib.Path, typer.Option(help="Per-country files folder")
    ] = pipeline.OUT_DIR,
    order: typing.Annotated[
        models.SortOrder, typer.Option(help="States and cities order in files")
    ] = models.SortOrder.INPUT,
    max_size: typing.Annotated[
        int, typer.Option(help="Maximum input file size (bytes)")
    ] = pipeline.MAX_FILE_SIZE,
) -> None:
    """Split the countries and states+cities datasets into one file per country"""
    print("🌍 City Coordinates Lookup - Data Processor")
    try:
        summary = pipeline.run(raw_dir, out_dir, order, max_size)
    except (errors.DecodeError, errors.SchemaError, errors.OutputError) as err:
        LOG.error("%s", err)
        raise typer.Exit(1)
    print(f"Done, {summary}")
    if summary.exit_code:
        raise typer.Exit(summary.exit_code)


def main() -> None:
    handler = logging.StreamHandler()
    LOG.addHandler(handler)
    if os.getenv("DEBUG"):
        LOG.setLevel(logging.DEBUG)
        handler.setLevel(logging.DEBUG)
    else:
        LOG.setLevel(logging.INFO)
        handler.setLevel(logging.INFO)
    app()


if __name__ == "__main__":
    main()
