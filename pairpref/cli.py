#!filepath: pairpref/cli.py
from pathlib import Path
from typing import List, Optional

import typer
from rich import print
from rich.table import Table

from pairpref import __version__, logs
from pairpref.config.app_config import AppConfig
from pairpref.utils.errors import PairprefError, UserInputError

app = typer.Typer(help="pairpref: pairwise preference learning CLI")


def _load_config(config: Optional[Path], seed: Optional[int] = None) -> AppConfig:
    cfg = AppConfig.load(str(config) if config else None)
    if seed is not None:
        cfg.analysis.seed = seed
    if cfg.log.file_enabled:
        logs.configure(cfg.log.dir, cfg.log.rotation, cfg.log.retention, cfg.log.level)
    return cfg


def _fail(e: PairprefError) -> None:
    # 用户输入错误不打 traceback
    print(f"[red]{type(e).__name__}: {e}[/red]")
    raise typer.Exit(code=1)


def _run_analysis(files: List[Path], cfg: AppConfig):
    from pairpref.io.records_csv import load_records
    from pairpref.workflows.offline_analysis import build_offline_analysis

    records = load_records(files)
    pipeline = build_offline_analysis(cfg)
    return pipeline.run(records)


def _weights_table(result) -> Table:
    table = Table(title=f"Learned weights ({result.run_id})")
    for col in ("feature", "mean", "std", "median", "stability", "importance", "tipping"):
        table.add_column(col, justify="left" if col == "feature" else "right")

    tipping = result.diagnostics.get("tipping_points", {})
    for f, row in result.weights.items():
        table.add_row(
            f,
            f"{row['mean']:+.4f}",
            f"{row['std']:.4f}",
            f"{row['median']:+.4f}",
            f"{row['stability']:.2f}",
            f"{row['importance']:+.3f}",
            tipping.get(f, ""),
        )
    return table


@app.command()
def version():
    print(f"v{__version__}")


@app.command()
def analyze(
        files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="CSV choice logs"),
        config: Optional[Path] = typer.Option(None, "--config", "-c", help="YAML config"),
        out: Optional[Path] = typer.Option(None, "--out", "-o", help="write JSON report"),
        seed: Optional[int] = typer.Option(None, "--seed", help="random seed"),
):
    """
    运行完整 offline analysis（grid search → ensemble → diagnostics → suggestions）
    """
    from pairpref.io.report_writer import write_report

    try:
        cfg = _load_config(config, seed)
        print(f"[green]Analysing {len(files)} file(s)[/green]")
        result = _run_analysis(files, cfg)
    except UserInputError as e:
        _fail(e)
        return

    print(
        f"best lr={result.best_params.get('lr')} l2={result.best_params.get('l2')} "
        f"cv={result.cv_score:.3f} reference_acc={result.reference_accuracy:.3f}"
    )
    print(_weights_table(result))

    redundant = result.diagnostics.get("redundant_pairs", [])
    if redundant:
        print("[yellow]Redundant features:[/yellow]")
        for line in redundant:
            print(f"  {line}")

    for line in result.diagnostics.get("blind_spots", []):
        print(f"[yellow]Blind spot[/yellow] {line}")

    print("[blue]Suggested next comparisons:[/blue]")
    for s in result.suggestions:
        print(f"  {s}")

    print(f"production config: {result.production_config}")

    if out is not None:
        write_report(result, out)
        print(f"[green]Report written → {out}[/green]")


@app.command()
def suggest(
        files: List[Path] = typer.Argument(..., exists=True, dir_okay=False),
        n: int = typer.Option(5, "-n", "--count", help="number of suggestions"),
        config: Optional[Path] = typer.Option(None, "--config", "-c"),
        seed: Optional[int] = typer.Option(None, "--seed"),
):
    """
    只输出 active-learning 建议
    """
    try:
        cfg = _load_config(config, seed)
        cfg.analysis.query_count = n
        result = _run_analysis(files, cfg)
    except UserInputError as e:
        _fail(e)
        return

    for s in result.suggestions:
        print(s)


@app.command()
def train(
        files: List[Path] = typer.Argument(..., exists=True, dir_okay=False),
        state: Path = typer.Option(Path("pairpref_state.json"), "--state", help="session state file"),
        mode: Optional[str] = typer.Option(None, "--mode", help="session mode"),
        config: Optional[Path] = typer.Option(None, "--config", "-c"),
):
    """
    逐条回放 records 到 online session（训练当前 mode，日志保留 CSV 的 mode），并持久化 state
    """
    from pairpref.io.records_csv import load_records
    from pairpref.io.state_store import JsonFileStateStore
    from pairpref.session.online_session import OnlineSession

    try:
        cfg = _load_config(config)
        session = OnlineSession(cfg.session, JsonFileStateStore(state), cfg.trainer)
        if mode is not None:
            session.set_mode(mode)

        records = load_records(files)
        for r in records:
            session.choose(r.feat_a, r.feat_b, r.choice, tag=r.mode)
    except UserInputError as e:
        _fail(e)
        return

    print(f"[green]Replayed {len(records)} decisions in mode {session.mode}[/green]")
    table = Table(title="Current weights")
    table.add_column("feature")
    table.add_column("weight", justify="right")
    for f, w in session.weights.items():
        table.add_row(f, f"{w:+.4f}")
    print(table)


@app.command()
def profiles(
        files: List[Path] = typer.Argument(..., exists=True, dir_okay=False, help="one CSV per profile"),
        config: Optional[Path] = typer.Option(None, "--config", "-c"),
        out: Optional[Path] = typer.Option(None, "--out", "-o", help="write JSON group report"),
):
    """
    Group analysis：每个文件单独训练，比较 profile 之间的共识与分歧
    """
    from pairpref.io.records_csv import load_profile_csv
    from pairpref.io.report_writer import write_json
    from pairpref.training.engines.profile_engine import ProfileEngine

    try:
        cfg = _load_config(config)
        engine = ProfileEngine(cfg.profiles, cfg.trainer)
        found = []
        for path in files:
            user_id, records = load_profile_csv(path)
            p = engine.profile(path.stem, records, user_id)
            if p is not None:
                found.append(p)
        report = engine.compare(found)
    except UserInputError as e:
        _fail(e)
        return

    table = Table(title=f"Profiles ({len(report.profiles)})")
    table.add_column("profile")
    table.add_column("decisions", justify="right")
    table.add_column("consistency", justify="right")
    for p in report.profiles:
        color = "green" if p.consistency > 0.8 else "yellow" if p.consistency > 0.6 else "red"
        table.add_row(p.label, str(p.record_count), f"[{color}]{p.consistency:.0%}[/{color}]")
    print(table)

    shared = Table(title="Shared weights")
    shared.add_column("feature")
    shared.add_column("mean", justify="right")
    shared.add_column("std", justify="right")
    for f in report.by_strength():
        s = report.features[f]
        shared.add_row(f, f"{s.mean:+.4f}", f"{s.std:.4f}")
    print(shared)

    print(f"most consistent: {report.most_consistent}")
    print(f"[blue]{report.recommendation()}[/blue]")

    if out is not None:
        write_json(report.to_dict(), out)
        print(f"[green]Group report written → {out}[/green]")


if __name__ == "__main__":
    app()

# python -m pairpref.cli analyze logs.csv --seed 7
