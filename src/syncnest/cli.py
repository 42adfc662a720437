"""Command-line interface for the SyncNest backup application."""

import sys
import time
from pathlib import Path
from typing import Optional

import click
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .config.settings import SyncNestConfig
from .sync.backup_manager import BackupManager, BackupResult
from .sync.exceptions import SyncNestError
from .utils.file_utils import FileHelper
from .utils.logging import FileLogSink, TeeSink, setup_logging

console = Console()

DEFAULT_CONFIG = Path('config/config.yaml')
DIAGNOSTIC_LOG = 'syncnest.log'


def _load_config(config: Optional[Path]) -> SyncNestConfig:
    """Load the config file if present, defaults otherwise."""
    if config is not None and config.exists():
        return SyncNestConfig.from_yaml(config)
    return SyncNestConfig()


def _printable(text: str) -> str:
    """Escape undecodable file name bytes so the console can encode them."""
    return escape(text.encode('utf-8', 'backslashreplace').decode('utf-8'))


def _console_sink(line: str):
    if line.startswith(("Could not", "Rejected")):
        console.print(_printable(line), style="red")
    elif line.startswith("Skipping"):
        console.print(_printable(line), style="yellow")
    else:
        console.print(_printable(line))


@click.group()
@click.version_option(version="1.0.0")
def cli():
    """SyncNest - Smart Backup

    Incrementally mirror a source directory into a backup directory,
    tracking file fingerprints in a manifest across runs.
    """
    pass


@cli.command()
@click.option('--config', '-c',
              type=click.Path(path_type=Path),
              default=DEFAULT_CONFIG,
              help='Path to configuration file')
@click.option('--source', '-s',
              type=click.Path(path_type=Path),
              help='Source directory (overrides config)')
@click.option('--backup', '-b', 'backup_dir',
              type=click.Path(path_type=Path),
              help='Backup directory (overrides config)')
@click.option('--log-dir', '-l',
              type=click.Path(path_type=Path),
              help='Directory for backup and diagnostic log files (overrides config)')
@click.option('--verbose', '-v',
              is_flag=True,
              help='Show diagnostic logging')
def backup(config: Path, source: Optional[Path], backup_dir: Optional[Path],
           log_dir: Optional[Path], verbose: bool):
    """Run a backup now."""
    try:
        sync_config = _load_config(config)

        source = source or sync_config.source_dir
        backup_dir = backup_dir or sync_config.backup_dir
        log_dir = log_dir or sync_config.log_dir

        if source is None or backup_dir is None:
            raise click.UsageError("Both a source and a backup directory are required "
                                   "(--source/--backup or the config file)")

        setup_logging(
            log_level="DEBUG" if verbose else sync_config.log_level,
            log_file=log_dir / DIAGNOSTIC_LOG
        )

        log_file = log_dir / f"backup_log_{int(time.time() * 1000)}.txt"
        sink = TeeSink(FileLogSink(log_file), _console_sink)

        manager = BackupManager(sync_config.sync_options)
        result = manager.run_backup(source, backup_dir, sink)

        _display_backup_results(result)

    except click.UsageError:
        raise
    except SyncNestError as e:
        console.print(f"❌ Backup failed: {_printable(str(e))}", style="red bold")
        sys.exit(1)
    except Exception as e:
        console.print(f"❌ Error: {escape(str(e))}", style="red bold")
        sys.exit(1)


def _display_backup_results(result: BackupResult):
    """Display backup results in a nice table."""
    table = Table(title="Backup Results")
    table.add_column("Source", style="cyan")
    table.add_column("Files Processed", justify="right")
    table.add_column("Files Copied", justify="right", style="green")
    table.add_column("Unchanged", justify="right", style="yellow")
    table.add_column("Tombstones", justify="right", style="magenta")
    table.add_column("Duration", justify="right")
    table.add_column("Errors", justify="right", style="red")

    table.add_row(
        str(result.source_dir),
        str(result.files_processed),
        str(result.files_copied),
        str(result.files_unchanged),
        str(result.tombstones_created),
        f"{result.duration:.1f}s",
        str(len(result.errors))
    )

    console.print(table)

    if result.errors:
        rprint(f"\n⚠️ [yellow]{len(result.errors)} errors occurred:[/yellow]")
        for error in result.errors:
            console.print(f"   • {_printable(error)}", style="red")


@cli.command()
@click.option('--config', '-c',
              type=click.Path(path_type=Path),
              default=DEFAULT_CONFIG,
              help='Path to save configuration file')
@click.option('--source', '-s',
              type=click.Path(path_type=Path),
              default=Path('data'),
              help='Source directory to back up')
@click.option('--backup', '-b', 'backup_dir',
              type=click.Path(path_type=Path),
              default=Path('backup'),
              help='Backup directory')
def init(config: Path, source: Path, backup_dir: Path):
    """Initialize a new configuration file."""
    if config.exists():
        if not click.confirm(f"Configuration file {config} already exists. Overwrite?"):
            return

    console.print("🚀 Creating new configuration file...")

    sample_config = SyncNestConfig(
        source_dir=source,
        backup_dir=backup_dir,
        log_dir=Path('logs')
    )
    sample_config.to_yaml(config)

    console.print(f"✅ Configuration saved to {config}", style="green")
    console.print("\n📝 Next steps:")
    console.print("1. Edit the configuration file to match your setup")
    console.print("2. Run 'syncnest backup' to start backing up")


@cli.command()
@click.option('--config', '-c',
              type=click.Path(exists=True, path_type=Path),
              default=DEFAULT_CONFIG,
              help='Path to configuration file')
def status(config: Path):
    """Show configured paths and manifest statistics."""
    try:
        sync_config = SyncNestConfig.from_yaml(config)

        console.print("📁 [bold]Configured Paths:[/bold]")
        rprint(f"   • Source: {sync_config.source_dir}")
        rprint(f"   • Backup: {sync_config.backup_dir}")
        rprint(f"   • Logs:   {sync_config.log_dir}")

        if sync_config.backup_dir is None or not sync_config.backup_dir.is_dir():
            console.print("\n⚠️ No backup directory yet. Run 'syncnest backup' first.", style="yellow")
            return

        manager = BackupManager(sync_config.sync_options)
        stats = manager.get_manifest_stats(sync_config.backup_dir, sync_config.source_dir)

        table = Table(title="Manifest")
        table.add_column("Tracked Files", justify="right", style="cyan")
        table.add_column("In Backup", justify="right", style="green")
        table.add_column("Tombstones", justify="right", style="magenta")
        table.add_column("Backup Size", justify="right")
        table.add_row(
            str(stats['tracked_files']),
            str(stats['backed_up_files']),
            str(stats['tombstones']),
            FileHelper.format_file_size(stats['total_size'])
        )
        console.print(table)

    except Exception as e:
        console.print(f"❌ Error: {escape(str(e))}", style="red bold")
        sys.exit(1)


if __name__ == '__main__':
    cli()
