#!filepath: rbridge/cli.py
from pathlib import Path
from typing import List, Optional

import typer
from rich import print

from rbridge import AppConfig, __version__, init_logging
from rbridge.config.model_file import load_model_configuration
from rbridge.manager.model_manager import ModelManager
from rbridge.rserve.client import RserveClient
from rbridge.utils.errors import BridgeError

app = typer.Typer(help="rbridge: host R models behind Rserve")

ConfigOption = typer.Option(None, "--config", "-c", help="application YAML (defaults to base.yml)")


def _manager(config: Optional[str]) -> ModelManager:
    cfg = AppConfig.load(config)
    init_logging(cfg.log)
    return ModelManager.from_config(cfg)


def _parse_value(raw: str):
    if raw == "NA":
        return None
    try:
        return float(raw)
    except ValueError:
        return raw


@app.command()
def version():
    print(__version__)


@app.command()
def ping(config: Optional[str] = ConfigOption):
    """
    Check that the R engine answers.
    """
    cfg = AppConfig.load(config)
    with RserveClient.connect(cfg.rserve) as client:
        result = client.evaluate("R.version.string")
    print(f"[green]{result.value}[/green]")


@app.command()
def train(
    instances: Path,
    model_config: Path = typer.Option(..., "--model-config", "-m"),
    output: Path = typer.Option(..., "--output", "-o"),
    config: Optional[str] = ConfigOption,
):
    """
    Train a model from an instance dump and write the serialized model.
    """
    manager = _manager(config)
    try:
        data = manager.train_file(load_model_configuration(str(model_config)), instances)
        output.write_bytes(data)
        print(f"[green]model written to {output} ({len(data)} bytes)[/green]")
    except BridgeError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    finally:
        manager.close()


@app.command()
def score(
    artifact: Path,
    value: List[str] = typer.Option(..., "--value", "-v", help="feature value, NA for missing"),
    model_config: Path = typer.Option(..., "--model-config", "-m"),
    config: Optional[str] = ConfigOption,
):
    """
    Score one row against a serialized model.
    """
    manager = _manager(config)
    model_id = None
    try:
        model_id = manager.add_model(load_model_configuration(str(model_config)), artifact.read_bytes())
        scores = manager.score([model_id], [_parse_value(v) for v in value])[0]
        print(scores.tolist())
    except BridgeError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    finally:
        if model_id is not None:
            manager.remove_model(model_id)
        manager.close()


@app.command()
def export(
    artifact: Path,
    output: Path = typer.Option(..., "--output", "-o"),
    model_config: Path = typer.Option(..., "--model-config", "-m"),
    gzip: bool = typer.Option(False, "--gzip"),
    config: Optional[str] = ConfigOption,
):
    """
    Convert a serialized model to the interchange format.
    """
    manager = _manager(config)
    model_id = None
    try:
        model_id = manager.add_model(load_model_configuration(str(model_config)), artifact.read_bytes())
        path = manager.export_artifact(model_id, output, compress=gzip)
        print(f"[green]exported to {path}[/green]")
    except BridgeError as e:
        print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    finally:
        if model_id is not None:
            manager.remove_model(model_id)
        manager.close()


if __name__ == "__main__":
    app()

# python -m rbridge.cli train data.arff -m model.yml -o model.rdata
