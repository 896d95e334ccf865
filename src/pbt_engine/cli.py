"""Typer CLI entry point for the property-based testing engine."""

import importlib
from pathlib import Path
from typing import Any, List, Optional

import typer
from loguru import logger

from pbt_engine.config import EngineConfig
from pbt_engine.database.integrity import DatabaseVerifier
from pbt_engine.database.store import ExampleDatabase
from pbt_engine.engine.schema import ReplayToken
from pbt_engine.errors import InvalidArgument
from pbt_engine.property import Property
from pbt_engine.report.reporter import SessionSummary, format_report
from pbt_engine.utils.logging_config import setup_logging

app = typer.Typer(name="pbt-engine", help="Property-based testing: generate, check, shrink")


def _load_config(config_path: Optional[Path], log_level: Optional[str]) -> EngineConfig:
    cfg = EngineConfig.from_toml(config_path) if config_path else EngineConfig()
    setup_logging(
        level=log_level or cfg.logging.level,
        log_dir=cfg.logging.log_dir,
        rotation=cfg.logging.rotation,
        retention=cfg.logging.retention,
    )
    return cfg


def _load_property(target: str) -> Property:
    """Resolve ``package.module:attribute`` to a Property."""
    module_name, sep, attr_path = target.partition(":")
    if not sep or not attr_path:
        raise typer.BadParameter(f"Expected module:attribute, got {target!r}")
    obj: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        obj = getattr(obj, part)
    obj = getattr(obj, "property", obj)
    if not isinstance(obj, Property):
        raise typer.BadParameter(f"{target} is not a property (decorate it with given())")
    return obj


def _database(cfg: EngineConfig, path: Optional[Path]) -> ExampleDatabase:
    db_path = path or cfg.database.path
    if db_path is None:
        raise typer.BadParameter("No database path: pass --path or set [database] path in the config")
    return ExampleDatabase(db_path)


@app.command()
def run(
    targets: List[str] = typer.Argument(..., help="Properties to run, as module:attribute"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to engine TOML config"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Fixed seed for fresh trials"),
    trials: Optional[int] = typer.Option(None, "--trials", "-n", help="Fresh trials per property"),
    replay: Optional[str] = typer.Option(None, "--replay", help="Replay token seed:trial_index"),
    report: Optional[Path] = typer.Option(None, "--report", help="Write a JSON session report"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Console log level"),
) -> None:
    """Run properties and print a report for each."""
    cfg = _load_config(config_path, log_level)
    overrides: dict[str, Any] = {}
    if seed is not None:
        overrides["seed"] = seed
    if trials is not None:
        overrides["trial_count"] = trials
    try:
        token = ReplayToken.decode(replay) if replay else None
    except InvalidArgument as e:
        raise typer.BadParameter(str(e)) from e
    database = ExampleDatabase(cfg.database.path) if cfg.database.path else None
    settings = cfg.settings if config_path else None

    summary = SessionSummary()
    for target in targets:
        prop = _load_property(target)
        result = prop.run(settings, replay=token, database=database, **overrides)
        typer.echo(format_report(result))
        summary.add(result)

    if report:
        summary.save(report)
    logger.info(f"Session summary: {summary.to_dict()}")
    if not summary.all_passed:
        raise typer.Exit(code=1)


@app.command("db-show")
def db_show(
    path: Optional[Path] = typer.Option(None, "--path", help="Database file"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to engine TOML config"),
) -> None:
    """List stored replay tokens per property."""
    cfg = _load_config(config_path, None)
    grouped = _database(cfg, path).summary()
    if not grouped:
        typer.echo("No stored examples.")
        return
    for name, tokens in sorted(grouped.items()):
        typer.echo(f"{name}: {', '.join(tokens)}")


@app.command("db-clear")
def db_clear(
    path: Optional[Path] = typer.Option(None, "--path", help="Database file"),
    property_name: Optional[str] = typer.Option(None, "--property", help="Only clear this property"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to engine TOML config"),
) -> None:
    """Remove stored replay tokens."""
    cfg = _load_config(config_path, None)
    removed = _database(cfg, path).clear(property_name)
    typer.echo(f"Removed {removed} entries.")


@app.command("db-verify")
def db_verify(
    path: Optional[Path] = typer.Option(None, "--path", help="Database file"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to engine TOML config"),
) -> None:
    """Check that every stored entry can be replayed."""
    cfg = _load_config(config_path, None)
    db = _database(cfg, path)
    results = DatabaseVerifier(db.path).run_all_checks()
    for check, outcome in results.items():
        issues = outcome.get("errors", []) + outcome.get("issues", [])
        typer.echo(f"{check}: {'ok' if outcome['ok'] else 'FAIL'}")
        for issue in issues:
            typer.echo(f"  {issue}")
    if not all(v["ok"] for v in results.values()):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
