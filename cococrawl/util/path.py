import os
from pathlib import Path
from typing import Collection, Optional, Union

from cococrawl.formats.coco.context import IMAGE_EXTENSIONS


def get_extension(path: Path) -> Optional[str]:
    """Lowercase extension without the dot, None if the file has no extension"""
    name = path.name
    ext_dot_index = name.rfind(".")
    if ext_dot_index <= 0:
        return None
    return name[ext_dot_index + 1 :].lower()


def is_image(path: Path, extensions: Collection[str] = IMAGE_EXTENSIONS) -> bool:
    return get_extension(path) in extensions


def is_in_directory_tree(file_path: Path, directory: Path) -> bool:
    try:
        file_path.resolve().relative_to(directory.resolve())
    except ValueError:
        return False
    return True


def create_coco_image_path(image_path: Path, base_dir: Path, force_absolute: bool = False) -> str:
    """
    Path of an image as it gets written into a manifest.

    Images inside ``base_dir`` get a path relative to it (with forward slashes),
    everything else gets an absolute path.
    """
    absolute = image_path.resolve()
    if force_absolute or not is_in_directory_tree(absolute, base_dir):
        return str(absolute)
    return absolute.relative_to(base_dir.resolve()).as_posix()


def resolve_image_path(file_name: str, manifest_path: Union[str, Path]) -> Path:
    """Relative image paths in a manifest are relative to the manifest's directory"""
    if os.path.isabs(file_name):
        return Path(file_name)
    return Path(manifest_path).parent / file_name


def rebase_image_path(
    file_name: str,
    source_manifest: Union[str, Path],
    target_manifest: Union[str, Path],
    force_absolute: bool = False,
) -> str:
    """Rewrites an image path of ``source_manifest`` so it stays valid from ``target_manifest``"""
    return create_coco_image_path(
        resolve_image_path(file_name, source_manifest),
        Path(target_manifest).parent,
        force_absolute,
    )
