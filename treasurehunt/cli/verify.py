"""
treasurehunt/cli/verify.py

treasurehunt verify — audit log verification
============================================

Usage:
    treasurehunt verify <log>                       Human output (default)
    treasurehunt verify <log> --format json         Machine-readable JSON
    treasurehunt verify <log> --format compact      One-line pipeline output
    treasurehunt verify <log> --export report.json  Export full audit report
    treasurehunt verify <log> --quiet               Exit code only
    treasurehunt verify <log> --no-color            Disable ANSI

<log> is an audit.jsonl file or the directory holding it.

Exit codes:
    0  Log fully valid  (sequence + chain + signatures + schema)
    1  Log has violations
    2  Error  (file missing, malformed JSON, parse failure)
"""

import json
import sys
import time
from pathlib import Path
from typing import Optional

import click

from treasurehunt.core.envelope import HuntEvent
from treasurehunt.ledger.replay import ReplayEngine, ReplaySummary


# ── ANSI color ────────────────────────────────────────────────────────────────

class _Color:
    """Auto-disables when not a TTY or --no-color is passed."""
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def _wrap(cls, code: str, s: str) -> str:
        return f"\033[{code}m{s}\033[0m" if cls._on else s

    @classmethod
    def green(cls, s: str) -> str:
        return cls._wrap("32", s)

    @classmethod
    def red(cls, s: str) -> str:
        return cls._wrap("31", s)

    @classmethod
    def yellow(cls, s: str) -> str:
        return cls._wrap("33", s)

    @classmethod
    def bold(cls, s: str) -> str:
        return cls._wrap("1", s)

    @classmethod
    def dim(cls, s: str) -> str:
        return cls._wrap("2", s)


def _row_ok(label: str, value: str) -> str:
    return f"  {_Color.dim(f'{label:<16}')}  {_Color.green('OK  ')}  {value}"

def _row_fail(label: str, value: str) -> str:
    return f"  {_Color.dim(f'{label:<16}')}  {_Color.red('FAIL')}  {value}"

def _row_info(label: str, value: str) -> str:
    return f"  {_Color.dim(f'{label:<16}')}        {value}"


def _head_hash(engine: ReplayEngine) -> Optional[str]:
    """The causal_hash the next event appended to this log would carry."""
    if not engine.events:
        return None
    return HuntEvent.causal_hash_of(engine.events[-1])


# ── CLI command ───────────────────────────────────────────────────────────────

@click.command(name="verify")
@click.argument("ledger", type=click.Path(exists=False))
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json", "compact"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format.",
)
@click.option(
    "--export", "export_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Export full audit report to a JSON file.",
)
@click.option("--quiet", is_flag=True, default=False, help="Exit code only.")
@click.option("--no-color", is_flag=True, default=False, help="Disable ANSI color output.")
def verify_command(
    ledger:      str,
    fmt:         str,
    export_path: Optional[str],
    quiet:       bool,
    no_color:    bool,
) -> None:
    """
    Verify an audit log: sequence, hash chain, signatures, schema.

    \b
    Examples:
      treasurehunt verify .treasurehunt/ledger
      treasurehunt verify audit.jsonl --format json
      treasurehunt verify audit.jsonl --quiet && echo "clean"
    """
    _Color.configure(not no_color)

    ledger_path = Path(ledger)
    engine      = ReplayEngine()
    t_start     = time.perf_counter()

    try:
        engine.load(ledger_path)
    except (FileNotFoundError, ValueError) as e:
        _emit_error(str(e), fmt, quiet)
        sys.exit(2)

    summary   = engine.verify()
    elapsed   = time.perf_counter() - t_start
    head_hash = _head_hash(engine)

    if export_path:
        try:
            engine.export_json(Path(export_path))
        except (OSError, RuntimeError) as e:
            if not quiet and fmt == "human":
                click.echo(_Color.yellow(f"\n  Export failed: {e}"), err=True)

    if quiet:
        sys.exit(0 if summary.valid else 1)

    if fmt == "json":
        _output_json(summary, ledger_path, elapsed, head_hash, export_path)
    elif fmt == "compact":
        _output_compact(summary, ledger_path, elapsed)
    else:
        _output_human(summary, ledger_path, elapsed, head_hash, export_path)

    sys.exit(0 if summary.valid else 1)


# ── Human output ──────────────────────────────────────────────────────────────

def _output_human(
    summary:     ReplaySummary,
    ledger_path: Path,
    elapsed:     float,
    head_hash:   Optional[str],
    export_path: Optional[str],
) -> None:
    bar = "─" * 68

    click.echo()
    click.echo(_Color.bold("  TreasureHunt  ·  Audit Log Verification"))
    click.echo(f"  {bar}")
    click.echo(_row_info("Log", str(ledger_path)))
    click.echo(_row_info("Entries", f"{summary.total_entries:,}"))
    click.echo(_row_info("Contract", ", ".join(summary.contract_ids) or "—"))
    click.echo()

    by_type = {}
    for v in summary.violations:
        by_type.setdefault(v.violation_type, []).append(v)

    if "chain_break" in by_type:
        click.echo(_row_fail("Chain", f"{len(by_type['chain_break'])} break(s)"))
    else:
        click.echo(_row_ok("Chain", "intact"))

    if summary.invalid_signatures:
        click.echo(_row_fail(
            "Signatures",
            f"{summary.valid_signatures:,} valid, {summary.invalid_signatures:,} INVALID",
        ))
    else:
        click.echo(_row_ok(
            "Signatures", f"{summary.valid_signatures:,} / {summary.total_entries:,} valid"
        ))

    if "sequence_gap" in by_type:
        click.echo(_row_fail("Sequence", f"{len(by_type['sequence_gap'])} gap(s)"))
    else:
        click.echo(_row_ok("Sequence", "no gaps"))

    if "schema" in by_type:
        click.echo(_row_fail("Schema", f"{len(by_type['schema'])} violation(s)"))
    else:
        click.echo(_row_ok("Schema", "all events conform"))

    click.echo()
    if summary.first_timestamp:
        click.echo(_row_info("First event", summary.first_timestamp))
        click.echo(_row_info("Last event", summary.last_timestamp))
    if head_hash:
        click.echo(_row_info("Head hash", head_hash[:16] + "..." + head_hash[-8:]))
    if summary.event_type_counts:
        click.echo(_row_info("Event types", "  ".join(
            f"{k}: {v:,}" for k, v in sorted(summary.event_type_counts.items())
        )))
    click.echo(_row_info("Verified in", f"{elapsed:.3f}s"))
    if export_path:
        click.echo(_row_info("Exported", export_path))
    click.echo()

    for v in summary.violations:
        click.echo(
            f"  {_Color.red(str(v.at_sequence)):>6}  "
            f"{_Color.yellow(f'{v.violation_type:<18}')}  {v.detail}"
        )

    click.echo(f"  {bar}")
    if summary.valid:
        click.echo(_Color.green(_Color.bold("  VALID  ·  0 violations")))
    else:
        click.echo(_Color.red(_Color.bold(
            f"  INVALID  ·  {len(summary.violations)} violation(s)"
        )))
    click.echo()


# ── JSON output ───────────────────────────────────────────────────────────────

def _output_json(
    summary:     ReplaySummary,
    ledger_path: Path,
    elapsed:     float,
    head_hash:   Optional[str],
    export_path: Optional[str],
) -> None:
    out = {
        "treasurehunt_verify": {
            "ledger":             str(ledger_path),
            "total_entries":      summary.total_entries,
            "ledger_valid":       summary.valid,
            "chain_valid":        summary.chain_valid,
            "head_hash":          head_hash,
            "valid_signatures":   summary.valid_signatures,
            "invalid_signatures": summary.invalid_signatures,
            "violation_count":    len(summary.violations),
            "contract_ids":       summary.contract_ids,
            "event_type_counts":  summary.event_type_counts,
            "first_timestamp":    summary.first_timestamp,
            "last_timestamp":     summary.last_timestamp,
            "elapsed_seconds":    round(elapsed, 3),
            "export_path":        export_path,
            "violations": [
                {
                    "at_sequence":    v.at_sequence,
                    "event_id":       v.event_id,
                    "violation_type": v.violation_type,
                    "detail":         v.detail,
                }
                for v in summary.violations
            ],
        }
    }
    click.echo(json.dumps(out, indent=2))


# ── Compact output ────────────────────────────────────────────────────────────

def _output_compact(summary: ReplaySummary, ledger_path: Path, elapsed: float) -> None:
    """
    VALID    audit.jsonl   1,204 events  0 violations  0.081s
    INVALID  audit.jsonl     310 events  3 violations  0.022s
    """
    status = "VALID" if summary.valid else "INVALID"
    colour = _Color.green if summary.valid else _Color.red
    click.echo(
        colour(f"{status:<8}")
        + f"  {ledger_path.name:<30}  {summary.total_entries:>8,} events  "
        f"{len(summary.violations)} violations  {elapsed:.3f}s"
    )


# ── Error output ──────────────────────────────────────────────────────────────

def _emit_error(msg: str, fmt: str, quiet: bool) -> None:
    """Emit error in the requested format. Never raises."""
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({
            "treasurehunt_verify": {
                "error":        msg,
                "chain_valid":  False,
                "ledger_valid": False,
            }
        }))
    else:
        click.echo(_Color.red(f"\n  ERROR: {msg}\n"), err=True)
