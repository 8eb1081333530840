"""Two-way strategic merge patch computation.

Produces the same shape of patch the API server accepts with content type
``application/strategic-merge-patch+json``:

* keys missing from the modified object are set to ``null``;
* nested maps are diffed recursively;
* lists with a merge key (``containers`` by ``name``, ``volumeMounts`` by
  ``mountPath``, ...) are diffed item by item, so a patch touching one
  container never replaces the others.  Removed items become
  ``{"$patch": "delete", <key>: <value>}`` and the final order is carried in
  a ``$setElementOrder/<field>`` directive;
* every other list is replaced wholesale.

Merge keys are looked up by field name.  That is enough for Pod and
Deployment objects, where no field name carries two different merge keys.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from typing import Any

DELETE_DIRECTIVE = "$patch"
SET_ELEMENT_ORDER_PREFIX = "$setElementOrder/"

DEFAULT_MERGE_KEYS: Mapping[str, str] = {
    "containers": "name",
    "initContainers": "name",
    "ephemeralContainers": "name",
    "volumes": "name",
    "env": "name",
    "imagePullSecrets": "name",
    "volumeMounts": "mountPath",
    "volumeDevices": "devicePath",
    "ports": "containerPort",
    "hostAliases": "ip",
    "topologySpreadConstraints": "topologyKey",
    "pending": "name",
}


def create_two_way_merge_patch(
    original: dict[str, Any],
    modified: dict[str, Any],
    merge_keys: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    """Return the strategic merge patch turning *original* into *modified*.

    An empty dict means the two documents are equal.

    Raises:
        TypeError: if either document is not a JSON object.
        ValueError: if an item of a merge-keyed list lacks its merge key.
    """
    if not isinstance(original, dict) or not isinstance(modified, dict):
        raise TypeError("strategic merge patches are computed between JSON objects")
    return _diff_maps(original, modified, DEFAULT_MERGE_KEYS if merge_keys is None else merge_keys)


def _diff_maps(original: dict[str, Any], modified: dict[str, Any], merge_keys: Mapping[str, str]) -> dict[str, Any]:
    patch: dict[str, Any] = {}
    for key in original:
        if key not in modified:
            patch[key] = None

    for key, new in modified.items():
        if key not in original:
            patch[key] = copy.deepcopy(new)
            continue
        old = original[key]
        if old == new:
            continue
        if isinstance(old, dict) and isinstance(new, dict):
            sub = _diff_maps(old, new, merge_keys)
            if sub:
                patch[key] = sub
        elif isinstance(old, list) and isinstance(new, list) and key in merge_keys:
            items, order = _diff_merge_list(key, old, new, merge_keys)
            if items:
                patch[key] = items
            if order is not None:
                patch[SET_ELEMENT_ORDER_PREFIX + key] = order
        else:
            patch[key] = copy.deepcopy(new)
    return patch


def _diff_merge_list(
    field: str,
    original: list[Any],
    modified: list[Any],
    merge_keys: Mapping[str, str],
) -> tuple[list[dict[str, Any]], list[dict[str, Any]] | None]:
    merge_key = merge_keys[field]
    old_items = _index(field, original, merge_key)
    new_items = _index(field, modified, merge_key)

    items: list[dict[str, Any]] = []
    for item in modified:
        value = item[merge_key]
        if value not in old_items:
            items.append(copy.deepcopy(item))
            continue
        if old_items[value] != item:
            sub = _diff_maps(old_items[value], item, merge_keys)
            if sub:
                items.append({merge_key: value, **sub})

    for value in old_items:
        if value not in new_items:
            items.append({DELETE_DIRECTIVE: "delete", merge_key: value})

    kept_old_order = [v for v in old_items if v in new_items]
    kept_new_order = [v for v in new_items if v in old_items]
    if not items and kept_old_order == kept_new_order:
        return items, None
    return items, [{merge_key: item[merge_key]} for item in modified]


def _index(field: str, items: list[Any], merge_key: str) -> dict[Any, dict[str, Any]]:
    """Map merge-key value to item, first occurrence wins."""
    index: dict[Any, dict[str, Any]] = {}
    for item in items:
        if not isinstance(item, dict) or merge_key not in item:
            raise ValueError(f"item in {field!r} has no merge key {merge_key!r}: {item!r}")
        index.setdefault(item[merge_key], item)
    return index
