import contextlib
import logging
import sys
from pathlib import Path
from typing import Callable, Iterator, List, Optional

import typer
from pydantic import ValidationError
from tqdm import tqdm

from cococrawl.converters.copy import copy_file
from cococrawl.converters.count import count_document
from cococrawl.converters.crawl import crawl_directories
from cococrawl.converters.merge import merge_files
from cococrawl.converters.split import split_file
from cococrawl.errors import CocoError, PartialFailure
from cococrawl.formats.coco import ClashPolicy, CocoDocument, CopyContext, CrawlContext, MergeContext, SplitContext
from cococrawl.util import Observer

app = typer.Typer(help="Crawl, merge, split, copy and count COCO datasets", no_args_is_help=True)


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )


@contextlib.contextmanager
def _progress(desc: str) -> Iterator[Observer]:
    """tqdm bar driven by the (done, total) callbacks of a parallel operation"""
    bar = tqdm(desc=desc, unit="img", disable=None)

    def observe(done: int, total: int):
        if bar.total != total:
            bar.total = total
        bar.n = done
        bar.refresh()

    try:
        yield observe
    finally:
        bar.close()


def _report_failures(failures: List[PartialFailure]):
    for failure in failures:
        typer.echo(f"Skipped {failure}", err=True)


def _run(func: Callable[[], None]):
    try:
        func()
    except CocoError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)


@app.command()
def crawl(
    directories: List[Path] = typer.Argument(..., help="Directories to search for images"),
    output: Path = typer.Option(Path("coco.json"), "--output", "-o", help="Output manifest"),
    version: str = typer.Option("1.0.0", "--version-string", "-v", help="Version written into the info section"),
    absolute_paths: bool = typer.Option(
        False, "--absolute-paths", "-a", help="Write absolute image paths even inside the output directory"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """Build a COCO manifest (without annotations) out of all the images found in the directories"""
    _setup_logging(verbose)

    def do():
        context = CrawlContext(version=version, absolute_paths=absolute_paths, base_dir=output.resolve().parent)
        with _progress("Reading images") as observer:
            result = crawl_directories(directories, context, observer)
        _report_failures(result.failures)
        result.document.save(output)
        typer.echo(f"Wrote {len(result.document.images)} images to {output}")

    _run(do)


@app.command()
def merge(
    files: List[Path] = typer.Argument(..., help="Manifests to merge, in order of precedence"),
    output: Path = typer.Option(Path("merged.json"), "--output", "-o", help="Output manifest"),
    reassign_ids: bool = typer.Option(
        False, "--reassign-ids", "-r", help="Give new ids to everything from the files after the first one"
    ),
    version: str = typer.Option("1.0.0", "--version-string", "-v", help="Version written into the info section"),
    absolute_paths: bool = typer.Option(False, "--absolute-paths", "-a", help="Write absolute image paths"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """Merge manifests into one, deduplicating categories and licenses"""
    _setup_logging(verbose)

    def do():
        context = MergeContext(
            policy=ClashPolicy.REASSIGN if reassign_ids else ClashPolicy.IGNORE,
            version=version,
            absolute_paths=absolute_paths,
        )
        merged = merge_files(files, output, context)
        typer.echo(f"Wrote {len(merged.images)} images and {len(merged.annotations)} annotations to {output}")

    _run(do)


@app.command()
def split(
    file: Path = typer.Argument(..., help="Manifest to split"),
    output: Path = typer.Option(Path("split.json"), "--output", "-o", help="Output manifest"),
    count: Optional[int] = typer.Option(
        None, "--count", "-c", min=0, help="Number of images in the split. All remaining images if not set"
    ),
    blacklist: Optional[List[Path]] = typer.Option(
        None, "--blacklist", "-b", help="Manifest whose images can't be part of the split. Can be repeated"
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible shuffling"),
    shuffle: bool = typer.Option(True, "--shuffle/--no-shuffle", help="Shuffle the images before picking"),
    offset: int = typer.Option(0, "--offset", min=0, help="Images to skip. Only valid with --no-shuffle"),
    annotated_only: bool = typer.Option(False, "--annotated-only", help="Only pick images with annotations"),
    absolute_paths: bool = typer.Option(False, "--absolute-paths", "-a", help="Write absolute image paths"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """
    Take a subset of the images of a manifest, with their annotations.

    Splits made one after another with the earlier ones as blacklists don't overlap, e.g.:

        cocosplit dataset.json -o val.json -c 1000

        cocosplit dataset.json -o train.json -b val.json
    """
    _setup_logging(verbose)
    try:
        context = SplitContext(
            count=count,
            seed=seed,
            shuffle=shuffle,
            offset=offset,
            annotated_only=annotated_only,
            absolute_paths=absolute_paths,
        )
    except ValidationError:
        raise typer.BadParameter("--offset can only be used together with --no-shuffle", param_hint="--offset")

    def do():
        result = split_file(file, output, context, blacklist or [])
        typer.echo(f"Wrote {len(result.images)} images and {len(result.annotations)} annotations to {output}")

    _run(do)


@app.command()
def cp(
    file: Path = typer.Argument(..., help="Manifest of the dataset to copy"),
    output: Path = typer.Option(Path("coco-dataset"), "--output", "-o", help="Output directory"),
    absolute_paths: bool = typer.Option(False, "--absolute-paths", "-a", help="Write absolute image paths"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """Copy a dataset with all its images into one self-contained directory"""
    _setup_logging(verbose)

    def do():
        with _progress("Copying images") as observer:
            result = copy_file(file, output, CopyContext(absolute_paths=absolute_paths), observer)
        _report_failures(result.failures)
        typer.echo(f"Copied {len(result.document.images) - len(result.failures)} images to {output}")

    _run(do)


@app.command()
def count(
    file: Path = typer.Argument(..., help="Manifest to count"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """Print the number of images, annotations and categories of a manifest"""
    _setup_logging(verbose)

    def do():
        counts = count_document(CocoDocument.load(file))
        typer.echo(f"Coco File: {file.name}")
        for line in counts.report_lines():
            typer.echo(line)

    _run(do)


def _single_command_app(command: Callable) -> typer.Typer:
    single = typer.Typer(add_completion=False)
    single.command()(command)
    return single


crawl_app = _single_command_app(crawl)
merge_app = _single_command_app(merge)
split_app = _single_command_app(split)
cp_app = _single_command_app(cp)
count_app = _single_command_app(count)


if __name__ == "__main__":
    app()
