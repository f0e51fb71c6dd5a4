"""The resource list a KRM function works on, and reading one from files."""

from __future__ import annotations

import fnmatch
import posixpath
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import MutableMapping

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from kptcond.kubeobject import KubeObject

PATH_ANNOTATION = "internal.config.kubernetes.io/path"
LEGACY_PATH_ANNOTATION = "config.kubernetes.io/path"
KPTFILE_NAME = "Kptfile"
KPTFILE_API_VERSION = "kpt.dev/v1"
KPTFILE_KIND = "Kptfile"

_INCLUDE_PATTERNS = ("*.yaml", "*.yml", KPTFILE_NAME)


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class Result:
    """A message reported back by the function."""

    message: str
    severity: Severity = Severity.ERROR


@dataclass
class ResourceList:
    """The items of a package and the results reported on them."""

    items: list[KubeObject] = field(default_factory=list)
    results: list[Result] = field(default_factory=list)

    def upsert(self, obj: KubeObject) -> None:
        """Replace the item with the same identity, or append the object."""
        for idx, item in enumerate(self.items):
            if item.same_identity(obj):
                self.items[idx] = obj
                return
        self.items.append(obj)

    def remove(self, obj: KubeObject) -> None:
        """Remove every item with the same identity as the object."""
        self.items[:] = [item for item in self.items if not item.same_identity(obj)]

    def root_kptfile(self) -> KubeObject | None:
        """Return the Kptfile at the root of the package.

        A Kptfile carrying no path annotation counts as the root one.
        """
        for item in self.items:
            if not item.is_gvk(KPTFILE_API_VERSION, KPTFILE_KIND):
                continue
            annotations = item.get_annotations()
            path = annotations.get(PATH_ANNOTATION, annotations.get(LEGACY_PATH_ANNOTATION))
            if path is None or path == KPTFILE_NAME:
                return item
        return None

    def where_gvk(self, api_version: str, kind: str) -> list[KubeObject]:
        return [item for item in self.items if item.is_gvk(api_version, kind)]

    def error(self, msg: str | BaseException) -> None:
        self.results.append(Result(str(msg), Severity.ERROR))

    def info(self, msg: str | BaseException) -> None:
        self.results.append(Result(str(msg), Severity.INFO))


def _include_file(path: str) -> bool:
    base = posixpath.basename(path)
    return any(fnmatch.fnmatchcase(base, pattern) for pattern in _INCLUDE_PATTERNS)


def get_resource_list(resources: Mapping[str, str]) -> ResourceList:
    """Build a resource list from file contents keyed by path.

    Only YAML files and Kptfiles are read; each object is annotated with its path.
    """
    yaml = YAML()
    yaml.preserve_quotes = True
    yaml.width = 4096
    rl = ResourceList()
    for path in sorted(resources):
        if not _include_file(path):
            continue
        try:
            documents = list(yaml.load_all(resources[path]))
        except YAMLError as exc:
            raise ValueError(f"cannot parse {path}: {exc}") from exc
        for document in documents:
            if document is None:
                continue
            if not isinstance(document, MutableMapping):
                raise ValueError(f"{path}: a KRM object must be a YAML mapping")
            obj = KubeObject(document)
            obj.set_annotation(PATH_ANNOTATION, path)
            rl.upsert(obj)
    return rl