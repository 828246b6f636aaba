"""Tests for field visibility classification."""

from __future__ import annotations

import unittest

from leaguebook.constants import ALWAYS_PUBLIC_FIELDS, SENSITIVE_FIELDS
from leaguebook.sync.visibility import (
    BUCKET_ALLOWLIST,
    BUCKET_GROUP,
    BUCKET_PRIVATE,
    BUCKET_PUBLIC,
    VisibilityRules,
    bucket_for,
    canonical_policy_entry,
    classify,
    reinterpret_legacy_mode,
)


class ClassifyTestCase(unittest.TestCase):
    """Test case for classify()."""

    def setUp(self) -> None:
        self.rules = VisibilityRules()

    def test_always_public_ignores_policy(self) -> None:
        for field in ALWAYS_PUBLIC_FIELDS:
            for entry in (
                {"mode": "private"},
                {"mode": "emails", "emails": ["a@example.com"]},
                {"public": False},
            ):
                self.assertEqual(self.rules.classify(field, {field: entry}), "public")
                self.assertEqual(
                    self.rules.classify(f"custom.{field}", {f"custom.{field}": entry}),
                    "public",
                )

    def test_sensitive_without_policy_is_private(self) -> None:
        for field in SENSITIVE_FIELDS:
            self.assertEqual(self.rules.classify(field, {}), "private")

    def test_sensitive_follows_its_policy_entry(self) -> None:
        self.assertEqual(self.rules.classify("iban", {"iban": {"public": True}}), "public")
        self.assertEqual(
            self.rules.classify("iban", {"iban": {"public": False}}), "private"
        )
        self.assertEqual(
            self.rules.classify("iban", {"iban": {"mode": "public"}}), "public"
        )

    def test_field_without_policy_is_private(self) -> None:
        self.assertEqual(self.rules.classify("favouriteColour", {}), "private")
        self.assertEqual(self.rules.classify("favouriteColour", None), "private")
        self.assertEqual(
            self.rules.classify("favouriteColour", {"favouriteColour": "public"}),
            "private",
        )

    def test_explicit_modes_are_returned(self) -> None:
        for mode in ("public", "group", "emails", "identities", "owner", "special"):
            self.assertEqual(self.rules.classify("team", {"team": {"mode": mode}}), mode)
        self.assertEqual(
            self.rules.classify("team", {"team": {"mode": "department"}}), "department"
        )

    def test_mode_aliases(self) -> None:
        self.assertEqual(self.rules.classify("team", {"team": {"mode": "league"}}), "group")
        self.assertEqual(
            self.rules.classify("team", {"team": {"mode": "comparto"}}), "department"
        )
        self.assertEqual(
            self.rules.classify("team", {"team": {"mode": "UIDS"}}), "identities"
        )

    def test_legacy_private_with_group_flag_is_group(self) -> None:
        policy = {"team": {"mode": "private", "wholeGroup": True}}
        self.assertEqual(self.rules.classify("team", policy), "group")
        policy = {"team": {"mode": "shared", "allLeague": True}}
        self.assertEqual(self.rules.classify("team", policy), "group")

    def test_legacy_shared_with_targets(self) -> None:
        self.assertEqual(
            self.rules.classify("team", {"team": {"mode": "shared", "uids": ["u2"]}}),
            "identities",
        )
        self.assertEqual(
            self.rules.classify(
                "team", {"team": {"mode": "shared", "emails": ["A@example.com"]}}
            ),
            "emails",
        )
        self.assertEqual(
            self.rules.classify(
                "team",
                {"team": {"mode": "shared", "uids": ["u2"], "emails": ["a@example.com"]}},
            ),
            "emails",
        )
        self.assertEqual(
            self.rules.classify("team", {"team": {"mode": "shared"}}), "private"
        )

    def test_legacy_public_flag(self) -> None:
        self.assertEqual(self.rules.classify("team", {"team": {"public": True}}), "public")
        self.assertEqual(
            self.rules.classify("team", {"team": {"public": "yes"}}), "private"
        )

    def test_unknown_mode_is_private(self) -> None:
        self.assertEqual(
            self.rules.classify("team", {"team": {"mode": "friends"}}), "private"
        )
        self.assertEqual(
            self.rules.classify("team", {"team": {"mode": "friends", "public": True}}),
            "private",
        )

    def test_custom_key_lookup(self) -> None:
        policy = {"team": {"mode": "group"}, "custom.team": {"mode": "owner"}}
        self.assertEqual(self.rules.classify("custom.team", policy), "owner")
        self.assertEqual(
            self.rules.classify("custom.team", {"team": {"mode": "group"}}), "group"
        )

    def test_rules_can_be_injected(self) -> None:
        rules = VisibilityRules(
            always_public=frozenset({"team"}), sensitive=frozenset({"name"})
        )
        self.assertEqual(rules.classify("team", {"team": {"mode": "private"}}), "public")
        self.assertEqual(rules.classify("name", {}), "private")
        self.assertEqual(rules.classify("name", {"name": {"public": True}}), "public")
        self.assertEqual(
            classify("team", {}, frozenset(), frozenset()),
            "private",
        )

    def test_rules_from_config(self) -> None:
        rules = VisibilityRules.from_config(
            {"ALWAYS_PUBLIC_FIELDS": None, "SENSITIVE_FIELDS": frozenset({"shoeSize"})}
        )
        self.assertEqual(rules.always_public, ALWAYS_PUBLIC_FIELDS)
        self.assertEqual(rules.sensitive, frozenset({"shoeSize"}))


class PolicyEntryTestCase(unittest.TestCase):
    """Test case for policy entry normalization."""

    def test_canonical_entry(self) -> None:
        entry = canonical_policy_entry(
            {
                "mode": " League ",
                "emails": ["A@Example.com", "a@example.com", "", None],
                "uids": "u1",
                "allLeague": True,
            }
        )
        self.assertEqual(
            entry,
            {
                "mode": "group",
                "emails": ["a@example.com"],
                "uids": ["u1"],
                "wholeGroup": True,
                "public": False,
            },
        )

    def test_non_mapping_entry(self) -> None:
        self.assertIsNone(canonical_policy_entry("public"))
        self.assertIsNone(canonical_policy_entry(None))

    def test_reinterpret_legacy_mode(self) -> None:
        self.assertEqual(reinterpret_legacy_mode({"wholeGroup": True, "uids": ["u"]}), "group")
        self.assertEqual(reinterpret_legacy_mode({"uids": ["u"], "emails": []}), "identities")
        self.assertEqual(reinterpret_legacy_mode({"emails": ["e@x.it"]}), "emails")
        self.assertEqual(reinterpret_legacy_mode({}), "private")

    def test_bucket_for(self) -> None:
        self.assertEqual(bucket_for("public"), BUCKET_PUBLIC)
        self.assertEqual(bucket_for("group"), BUCKET_GROUP)
        for mode in ("emails", "identities", "owner", "special", "department"):
            self.assertEqual(bucket_for(mode), BUCKET_ALLOWLIST)
        self.assertEqual(bucket_for("private"), BUCKET_PRIVATE)


if __name__ == "__main__":
    unittest.main()
