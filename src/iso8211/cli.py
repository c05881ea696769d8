import logging
from collections import Counter
from collections.abc import Iterator
from pathlib import Path

import orjson
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from iso8211.config import DecoderConfig, load_config
from iso8211.errors import Iso8211Error
from iso8211.export import records_to_arrow, records_to_json, records_to_jsonl
from iso8211.records import DataRecord, Iso8211Reader

app = typer.Typer(help="Decode ISO 8211 (IHO S-57) files into structured outputs.")
console = Console()
SUPPORTED_FORMATS = {"json", "jsonl", "arrow"}

ConfigOption = typer.Option(
    None, "--config", help="YAML/JSON decoder settings (strict, encoding, max_records)."
)
StrictOption = typer.Option(
    False, "--strict", help="Reject non-numeric leader/directory numbers instead of reading 0."
)
VerboseOption = typer.Option(False, "--verbose", "-v", help="Log decoder debug output.")


def _setup(config_path: Path | None, strict: bool, verbose: bool) -> DecoderConfig:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )
    if config_path is not None:
        if not config_path.is_file():
            raise typer.BadParameter(f"Config file not found: {config_path}")
        try:
            cfg = load_config(config_path)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    else:
        cfg = DecoderConfig()
    if strict:
        cfg.strict = True
    return cfg


def _check_input(path: Path) -> None:
    if not path.is_file():
        raise typer.BadParameter(f"Input file not found: {path}")


def _limited(reader: Iso8211Reader, limit: int | None) -> Iterator[DataRecord]:
    for idx, record in enumerate(reader):
        if limit is not None and idx >= limit:
            break
        yield record


def _fail(path: Path, exc: Iso8211Error) -> typer.Exit:
    console.print(f"[bold red]{type(exc).__name__}[/] while reading {path}: {escape(str(exc))}")
    return typer.Exit(code=1)


@app.command()
def catalog(
    input: Path = typer.Argument(..., help="ISO 8211 file (e.g. an S-57 .000 cell)."),
    config: Path | None = ConfigOption,
    strict: bool = StrictOption,
    verbose: bool = VerboseOption,
) -> None:
    """List the field types declared by the lead record."""
    _check_input(input)
    cfg = _setup(config, strict, verbose)
    try:
        with input.open("rb") as f:
            lead = Iso8211Reader(f, cfg).lead
            table = Table(title=f"{input.name} field types")
            for column in ("Tag", "Name", "Array descriptor", "Format controls", "Subfields"):
                table.add_column(column)
            for ft in lead.field_types.values():
                specs = ", ".join(
                    f"{s.tag or '-'}:{s.kind.value}" + (f"({s.width})" if s.width else "")
                    for s in ft.subfield_specs
                )
                cells = (ft.tag, ft.name, ft.array_descriptor, ft.format_controls, specs)
                table.add_row(*(escape(text) for text in cells))
    except Iso8211Error as exc:
        raise _fail(input, exc) from exc
    console.print(table)


@app.command()
def decode(
    input: Path = typer.Argument(..., help="ISO 8211 file to decode."),
    output: Path | None = typer.Option(
        None, "--output", "-o", help="Optional path to write structured output."
    ),
    format: str = typer.Option(
        "json", "--format", "-f", help="Output format: json | jsonl | arrow."
    ),
    max_records: int | None = typer.Option(
        None, "--max-records", help="Limit number of data records decoded."
    ),
    config: Path | None = ConfigOption,
    strict: bool = StrictOption,
    verbose: bool = VerboseOption,
) -> None:
    """Decode every data record using the lead record's field types."""
    fmt = format.lower()
    if fmt not in SUPPORTED_FORMATS:
        raise typer.BadParameter(f"Unsupported format '{format}'. Choose from {SUPPORTED_FORMATS}.")
    if fmt != "json" and output is None:
        raise typer.BadParameter(f"--output is required for format '{fmt}'.")
    _check_input(input)
    cfg = _setup(config, strict, verbose)
    limit = max_records if max_records is not None else cfg.max_records

    try:
        with input.open("rb") as f:
            records = list(_limited(Iso8211Reader(f, cfg), limit))
    except Iso8211Error as exc:
        raise _fail(input, exc) from exc

    if output is None:
        # bypass rich so decoded text is neither wrapped nor read as markup
        typer.echo(records_to_json(records, indent=True).decode())
        return
    if fmt == "json":
        output.write_bytes(records_to_json(records))
        console.print(f"[bold green]Wrote[/] {len(records)} records to {output}")
    elif fmt == "jsonl":
        count = records_to_jsonl(records, output)
        console.print(f"[bold green]Wrote[/] {count} records to {output}")
    else:
        rows = records_to_arrow(records, output)
        console.print(f"[bold green]Wrote[/] {rows} field rows to {output}")


@app.command()
def summary(
    input: Path = typer.Argument(..., help="ISO 8211 file to summarize."),
    config: Path | None = ConfigOption,
    strict: bool = StrictOption,
    verbose: bool = VerboseOption,
) -> None:
    """Count data records and fields per tag."""
    _check_input(input)
    cfg = _setup(config, strict, verbose)
    counts: Counter[str] = Counter()
    records = 0
    try:
        with input.open("rb") as f:
            reader = Iso8211Reader(f, cfg)
            for record in _limited(reader, cfg.max_records):
                records += 1
                counts.update(record.tags)
    except Iso8211Error as exc:
        raise _fail(input, exc) from exc

    payload = {
        "input": str(input),
        "field_types": len(reader.lead.field_types),
        "records": records,
        "field_counts": dict(counts),
    }
    typer.echo(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode())


if __name__ == "__main__":
    app()
