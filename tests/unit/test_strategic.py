"""Tests for create_two_way_merge_patch()."""

from __future__ import annotations

import pytest

from gkesa.patch.strategic import create_two_way_merge_patch


class TestMaps:
    def test_equal_documents_give_empty_patch(self) -> None:
        doc = {"metadata": {"name": "foo"}, "spec": {"containers": [{"name": "c1"}]}}
        assert create_two_way_merge_patch(doc, doc) == {}

    def test_added_key(self) -> None:
        assert create_two_way_merge_patch({"a": 1}, {"a": 1, "b": {"c": 2}}) == {"b": {"c": 2}}

    def test_removed_key_becomes_null(self) -> None:
        assert create_two_way_merge_patch({"a": 1, "b": 2}, {"a": 1}) == {"b": None}

    def test_changed_scalar(self) -> None:
        assert create_two_way_merge_patch({"a": 1}, {"a": 2}) == {"a": 2}

    def test_nested_maps_only_carry_changes(self) -> None:
        original = {"metadata": {"name": "foo", "labels": {"x": "1", "y": "2"}}}
        modified = {"metadata": {"name": "foo", "labels": {"x": "1", "y": "3"}}}
        assert create_two_way_merge_patch(original, modified) == {"metadata": {"labels": {"y": "3"}}}

    def test_list_without_merge_key_is_replaced(self) -> None:
        original = {"spec": {"tolerations": [{"key": "a"}]}}
        modified = {"spec": {"tolerations": [{"key": "a"}, {"key": "b"}]}}
        assert create_two_way_merge_patch(original, modified) == {"spec": {"tolerations": [{"key": "a"}, {"key": "b"}]}}

    def test_type_change_replaces_value(self) -> None:
        assert create_two_way_merge_patch({"a": {"b": 1}}, {"a": [1]}) == {"a": [1]}

    def test_rejects_non_objects(self) -> None:
        with pytest.raises(TypeError):
            create_two_way_merge_patch([], {})  # type: ignore[arg-type]


class TestMergeLists:
    def test_unchanged_containers_are_not_sent(self) -> None:
        original = {"spec": {"containers": [{"name": "c1", "image": "i1"}, {"name": "c2", "image": "i2"}]}}
        modified = {"spec": {"containers": [{"name": "c1", "image": "i1"}, {"name": "c2", "image": "i3"}]}}

        patch = create_two_way_merge_patch(original, modified)

        assert patch == {
            "spec": {
                "containers": [{"name": "c2", "image": "i3"}],
                "$setElementOrder/containers": [{"name": "c1"}, {"name": "c2"}],
            }
        }

    def test_appended_item(self) -> None:
        original = {"volumes": [{"name": "data", "emptyDir": {}}]}
        modified = {"volumes": [{"name": "data", "emptyDir": {}}, {"name": "gcp-sa", "secret": {"secretName": "sa"}}]}

        patch = create_two_way_merge_patch(original, modified)

        assert patch == {
            "volumes": [{"name": "gcp-sa", "secret": {"secretName": "sa"}}],
            "$setElementOrder/volumes": [{"name": "data"}, {"name": "gcp-sa"}],
        }

    def test_removed_item_gets_delete_directive(self) -> None:
        original = {"pending": [{"name": "a"}, {"name": "b"}, {"name": "c"}]}
        modified = {"pending": [{"name": "b"}, {"name": "c"}]}

        patch = create_two_way_merge_patch(original, modified)

        assert patch == {
            "pending": [{"$patch": "delete", "name": "a"}],
            "$setElementOrder/pending": [{"name": "b"}, {"name": "c"}],
        }

    def test_reorder_only_sends_element_order(self) -> None:
        original = {"env": [{"name": "A", "value": "1"}, {"name": "B", "value": "2"}]}
        modified = {"env": [{"name": "B", "value": "2"}, {"name": "A", "value": "1"}]}

        patch = create_two_way_merge_patch(original, modified)

        assert patch == {"$setElementOrder/env": [{"name": "B"}, {"name": "A"}]}

    def test_volume_mounts_merge_on_mount_path(self) -> None:
        original = {"volumeMounts": [{"name": "v", "mountPath": "/a"}]}
        modified = {"volumeMounts": [{"name": "v", "mountPath": "/a"}, {"name": "v", "mountPath": "/b"}]}

        patch = create_two_way_merge_patch(original, modified)

        assert patch["volumeMounts"] == [{"name": "v", "mountPath": "/b"}]
        assert patch["$setElementOrder/volumeMounts"] == [{"mountPath": "/a"}, {"mountPath": "/b"}]

    def test_nested_merge_list_inside_container(self) -> None:
        original = {"containers": [{"name": "c1", "env": [{"name": "A", "value": "1"}]}]}
        modified = {
            "containers": [
                {"name": "c1", "env": [{"name": "A", "value": "1"}, {"name": "B", "value": "2"}]},
            ]
        }

        patch = create_two_way_merge_patch(original, modified)

        assert patch == {
            "containers": [
                {
                    "name": "c1",
                    "env": [{"name": "B", "value": "2"}],
                    "$setElementOrder/env": [{"name": "A"}, {"name": "B"}],
                }
            ],
            "$setElementOrder/containers": [{"name": "c1"}],
        }

    def test_item_without_merge_key_is_an_error(self) -> None:
        with pytest.raises(ValueError, match="merge key"):
            create_two_way_merge_patch({"containers": [{"image": "x"}]}, {"containers": [{"image": "y"}]})

    def test_custom_merge_keys(self) -> None:
        original = {"rules": [{"id": 1, "v": "a"}, {"id": 2, "v": "b"}]}
        modified = {"rules": [{"id": 1, "v": "a"}, {"id": 2, "v": "c"}]}

        patch = create_two_way_merge_patch(original, modified, merge_keys={"rules": "id"})

        assert patch == {"rules": [{"id": 2, "v": "c"}], "$setElementOrder/rules": [{"id": 1}, {"id": 2}]}


class TestInitializerPatch:
    def test_last_pending_entry_is_nulled(self) -> None:
        original = {"metadata": {"name": "foo", "initializers": {"pending": [{"name": "self"}]}}}
        modified = {"metadata": {"name": "foo", "initializers": {}}}

        assert create_two_way_merge_patch(original, modified) == {"metadata": {"initializers": {"pending": None}}}

    def test_injection_patch_for_single_container_pod(self) -> None:
        original = {
            "metadata": {
                "name": "foo",
                "annotations": {"iam.cloud.google.com/service-account": "sa-1"},
                "initializers": {"pending": [{"name": "serviceaccounts.cloud.google.com"}]},
            },
            "spec": {"containers": [{"name": "c1", "image": "i1"}]},
        }
        modified = {
            "metadata": {
                "name": "foo",
                "annotations": {"iam.cloud.google.com/service-account": "sa-1"},
                "initializers": {},
            },
            "spec": {
                "volumes": [
                    {
                        "name": "gcp-sa-1",
                        "secret": {"secretName": "sa-1", "items": [{"key": "key.json", "path": "key.json"}]},
                    }
                ],
                "containers": [
                    {
                        "name": "c1",
                        "image": "i1",
                        "volumeMounts": [
                            {"name": "gcp-sa-1", "mountPath": "/var/run/secrets/gcp/sa-1", "readOnly": True}
                        ],
                        "env": [
                            {"name": "GOOGLE_APPLICATION_CREDENTIALS", "value": "/var/run/secrets/gcp/sa-1/key.json"}
                        ],
                    }
                ],
            },
        }

        patch = create_two_way_merge_patch(original, modified)

        assert patch == {
            "metadata": {"initializers": {"pending": None}},
            "spec": {
                "volumes": modified["spec"]["volumes"],
                "containers": [
                    {
                        "name": "c1",
                        "volumeMounts": modified["spec"]["containers"][0]["volumeMounts"],
                        "env": modified["spec"]["containers"][0]["env"],
                    }
                ],
                "$setElementOrder/containers": [{"name": "c1"}],
            },
        }
