"""``gkesa`` command: run the initializer or preview its patch offline."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import click

from gkesa import __version__
from gkesa.errors import InitializerError
from gkesa.initializer.gate import needs_initialization
from gkesa.initializer.mutator import Mutator
from gkesa.models.config import (
    DEFAULT_ANNOTATION,
    DEFAULT_INITIALIZER_NAME,
    DEFAULT_SECRET_MOUNT_PATH,
    InitializerConfig,
)
from gkesa.models.workload import WorkloadKind, WorkloadObject
from gkesa.patch.engine import compute_patch


@click.group()
@click.version_option(__version__, prog_name="gkesa")
def cli() -> None:
    """GKE service account initializer."""


@cli.command()
def run() -> None:
    """Run the initializer against the current cluster (GKESA_* env config)."""
    from gkesa.app import main

    asyncio.run(main())


@cli.command()
@click.argument("manifest", type=click.File("r"))
@click.option("--initializer-name", default=DEFAULT_INITIALIZER_NAME, show_default=True)
@click.option("--annotation", default=DEFAULT_ANNOTATION, show_default=True)
@click.option("--mount-path", default=DEFAULT_SECRET_MOUNT_PATH, show_default=True)
@click.option(
    "--kind",
    type=click.Choice([k.value for k in WorkloadKind]),
    default=None,
    help="Override the manifest's kind field.",
)
def preview(manifest: Any, initializer_name: str, annotation: str, mount_path: str, kind: str | None) -> None:
    """Print the patch the initializer would send for a JSON MANIFEST.

    Use ``-`` to read the manifest from stdin.
    """
    try:
        raw = json.load(manifest)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"manifest is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise click.ClickException("manifest must be a JSON object")

    try:
        workload_kind = WorkloadKind(kind or raw.get("kind", ""))
    except ValueError as exc:
        raise click.ClickException(f"unsupported kind {raw.get('kind')!r}; use --kind") from exc
    obj = WorkloadObject.from_dict(raw, kind=workload_kind)

    if not needs_initialization(obj, initializer_name):
        pending = obj.metadata.pending_names
        click.echo(f"{obj.ref} would be skipped: pending initializers {pending or 'none'}", err=True)
        return

    config = InitializerConfig(name=initializer_name, annotation=annotation, secret_mount_path=mount_path)
    try:
        result = Mutator(config).mutate(obj)
        assert result.obj is not None
        patch = compute_patch(obj, result.obj)
    except InitializerError as exc:
        raise click.ClickException(str(exc)) from exc

    if not result.modified:
        click.echo(
            f"{obj.ref}: annotation {annotation!r} missing or no containers; only the queue is updated",
            err=True,
        )
    click.echo(json.dumps(patch, indent=2, sort_keys=True))
