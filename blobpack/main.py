from __future__ import annotations
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich import print
from rich.markup import escape
from rich.table import Table
from serial.tools import list_ports

from .blobs.manifest import read_manifest, verify_manifest
from .config import DEFAULT_REGION, DEV, LINK_SCRIPT, LOG_FILE_NAME, MANIFEST_FILE, BuildConfig
from .errors import BlobPackError
from .eventlog import read_events
from .linker.region import iter_memory_regions
from .pipeline import build as run_build, cargo_directives, read_link_script

app = typer.Typer(add_completion=False,
                  help="Blob packing: carve flash, generate blob accessors, write the loader manifest.")

# USB vendor ids of common debug probes
PROBE_VENDORS = {
    0x0483: "ST-LINK",
    0x1366: "SEGGER J-Link",
    0x0D28: "DAPLink / CMSIS-DAP",
    0x2E8A: "Raspberry Pi Debug Probe",
    0x1209: "pid.codes (probe-rs compatible)",
    0x0403: "FTDI",
}


def _fail(message: str, code: int = 1) -> NoReturn:
    print(f"[red]{escape(message)}[/]")
    raise typer.Exit(code=code)


@app.command()
def build(
    manifest_dir: Path = typer.Option(..., envvar="CARGO_MANIFEST_DIR",
                                      help="Directory holding Blobs.toml and memory.x"),
    out_dir: Path = typer.Option(..., envvar="OUT_DIR", help="Where memory.x and blob.rs are written"),
    target_dir: Optional[Path] = typer.Option(None, envvar="CARGO_TARGET_DIR",
                                              help="Where BlobInfo.json is written (default: <manifest-dir>/target)"),
    profile: str = typer.Option(DEV, envvar="PROFILE", help="Build profile; 'release' embeds blobs by default"),
    region: str = typer.Option(DEFAULT_REGION, help="Memory region the blob space is taken from"),
    cargo: bool = typer.Option(False, help="Print cargo: directives for a build script"),
):
    """
    Lay out the blobs and write the patched linker script, the accessor
    module and the loader manifest.
    """
    config = BuildConfig(manifest_dir=manifest_dir, out_dir=out_dir, target_dir=target_dir,
                         profile=profile, region=region)
    try:
        result = run_build(config)
    except BlobPackError as e:
        _fail(f"Failed to prepare blobs: {e}")

    if cargo:
        for line in cargo_directives(config, result):
            typer.echo(line)
        return

    print(f"[green]Blob space:[/] 0x{result.base_address:08x}, {result.layout.total_size} bytes "
          f"taken from {escape(region)}")
    for blob in result.layout.blobs:
        where = "inline" if blob.inline else f"0x{result.base_address + blob.start:08x}"
        print(f"  [cyan]{escape(blob.name)}[/] {blob.size} bytes -> {where}")
    for path in result.outputs:
        print(f"[dim]wrote {escape(str(path))}[/]")


@app.command()
def show(manifest: Path = typer.Argument(Path("target") / MANIFEST_FILE, help="Manifest to display")):
    """Show the stored blobs listed in a manifest."""
    try:
        m = read_manifest(manifest)
    except BlobPackError as e:
        _fail(str(e))

    table = Table(title=f"{escape(str(manifest))} (chip {escape(m.chip)})")
    table.add_column("Blob", style="cyan", no_wrap=True)
    table.add_column("Start", justify="right", no_wrap=True)
    table.add_column("Size", justify="right")
    table.add_column("SHA-1")
    table.add_column("File")
    for name, info in m.info.items():
        table.add_row(escape(name), f"0x{info.start:08x}", str(info.size),
                      info.checksum.hex(), escape(info.filename))
    print(table)


@app.command()
def verify(manifest: Path = typer.Argument(Path("target") / MANIFEST_FILE, help="Manifest to check")):
    """Check that the blob files still match the manifest."""
    try:
        m = read_manifest(manifest)
    except BlobPackError as e:
        _fail(str(e))

    bad = 0
    for res in verify_manifest(m):
        if res.ok:
            print(f"[green]ok[/]   {escape(res.name)}")
        else:
            bad += 1
            print(f"[red]FAIL[/] {escape(res.name)}: {escape(res.reason)}")
    if bad:
        raise typer.Exit(code=1)


@app.command()
def regions(link_script: Path = typer.Argument(Path(LINK_SCRIPT), help="Linker script to read")):
    """List the memory regions declared in a linker script."""
    try:
        text = read_link_script(link_script)
        found = list(iter_memory_regions(text))
    except BlobPackError as e:
        _fail(str(e))
    if not found:
        _fail(f"No memory regions in {link_script}")

    table = Table(title=escape(str(link_script)))
    table.add_column("Region", style="cyan", no_wrap=True)
    table.add_column("Attr")
    table.add_column("Origin", justify="right", no_wrap=True)
    table.add_column("Length", justify="right")
    table.add_column("End", justify="right", no_wrap=True)
    for r in found:
        table.add_row(escape(r.name), escape(r.attributes or ""), hex(r.origin),
                      hex(r.length), hex(r.end))
    print(table)


@app.command()
def log(
    log_file: Path = typer.Argument(Path("target") / LOG_FILE_NAME, help="Build log to read"),
    last: int = typer.Option(10, help="Number of most recent events to show"),
):
    """Show recent build events."""
    try:
        events = read_events(log_file)
    except (OSError, ValueError) as e:
        _fail(f"Cannot read {log_file}: {e}")
    if not events:
        print("[yellow]No build events recorded.[/]")
        return
    for e in events[-last:] if last > 0 else events:
        kind = e.get("kind", "?")
        color = "red" if kind == "build_failed" else "green" if kind == "build_finished" else "cyan"
        payload = e.get("payload", {})
        detail = payload.get("message") or payload.get("base_address") or payload.get("region") or ""
        print(f"[dim]{escape(str(e.get('ts', '')))}[/] [{color}]{escape(kind)}[/] {escape(str(detail))}")


@app.command()
def ports():
    """List serial ports, marking known debug probes."""
    found = list_ports.comports()
    if not found:
        print("[yellow]No ports found.[/]")
        return
    for p in found:
        probe = PROBE_VENDORS.get(p.vid) if p.vid is not None else None
        tag = f" [green]({probe})[/]" if probe else ""
        print(f"[cyan]{escape(p.device)}[/] - {escape(p.description or '')}{tag}")


if __name__ == "__main__":
    app()
