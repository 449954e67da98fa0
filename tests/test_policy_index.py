from __future__ import annotations

import logging

import pytest

from sbom_license.policy import (
    POLICY_ALLOW,
    POLICY_DENY,
    POLICY_UNMATCHED,
    LicensePolicy,
    PolicyConflictError,
    PolicyIndex,
    is_valid_family_key,
    is_valid_policy_entry,
    is_valid_spdx_id,
    is_valid_usage_policy,
)


@pytest.mark.parametrize("value", ["MIT", "Apache-2.0", "AGPL-3.0-or-later", "CC-BY-4.0", "0BSD"])
def test_valid_spdx_ids(value: str) -> None:
    assert is_valid_spdx_id(value)


@pytest.mark.parametrize("value", ["", "?", "MIT+Apache-2.0", "GPL-2.0+", "Apache 2.0", " MIT", "MIT\n"])
def test_invalid_spdx_ids(value: str) -> None:
    assert not is_valid_spdx_id(value)


@pytest.mark.parametrize(
    "value",
    ["CONFLICT", "conflict", "Conflict", "Foo-Conflict-2.0-Bar", "UNKNOWN", "unknown", "Foo-Unknown-1.1-Bar"],
)
def test_reserved_family_keys_rejected(value: str) -> None:
    assert not is_valid_family_key(value)


def test_family_key_must_be_identifier() -> None:
    assert is_valid_family_key("GPL")
    assert not is_valid_family_key("GPL family")
    assert not is_valid_family_key("")


def test_usage_policy_values() -> None:
    assert is_valid_usage_policy("allow")
    assert is_valid_usage_policy("deny")
    assert not is_valid_usage_policy("CONFLICT")
    assert not is_valid_usage_policy("Allow")


def test_family_entry_children_validated(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="sbom_license.policy")
    good = LicensePolicy(family="BSD", usage_policy="allow", name="BSD", children=["BSD-2-Clause"])
    bad = LicensePolicy(family="BSD", usage_policy="allow", name="BSD", children=["BSD 2 Clause"])

    assert is_valid_policy_entry(good)
    assert not is_valid_policy_entry(bad)
    assert "BSD 2 Clause" in caplog.text


def test_build_skips_invalid_entries(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.WARNING, logger="sbom_license.policy")
    policies = [
        LicensePolicy(id="MIT", family="MIT", name="MIT", usage_policy="allow"),
        LicensePolicy(id="Bad Id", family="Bad", name="bad", usage_policy="allow"),
        LicensePolicy(id="Foo-1.0", family="Foo", name="foo", usage_policy="conditional"),
        LicensePolicy(id="Bar-1.0", family="UNKNOWN", name="bar", usage_policy="deny"),
    ]

    index = PolicyIndex.build(policies)

    assert list(index.by_id) == ["MIT"]
    assert list(index.by_family) == ["MIT"]
    assert len(index) == 1
    assert "invalid SPDX ID" in caplog.text
    assert "invalid Usage Policy" in caplog.text
    assert "invalid Family" in caplog.text


def test_duplicate_id_is_conflict() -> None:
    policies = [
        LicensePolicy(id="MIT", family="MIT", name="MIT", usage_policy="allow"),
        LicensePolicy(id="MIT", family="MIT", name="MIT again", usage_policy="allow"),
    ]
    with pytest.raises(PolicyConflictError, match="MIT"):
        PolicyIndex.build(policies)


def test_family_usage_mismatch_is_conflict() -> None:
    policies = [
        LicensePolicy(id="GPL-2.0-only", family="GPL", name="GPL 2", usage_policy="deny"),
        LicensePolicy(id="GPL-3.0-only", family="GPL", name="GPL 3", usage_policy="allow"),
    ]
    with pytest.raises(PolicyConflictError) as excinfo:
        PolicyIndex.build(policies)
    assert excinfo.value.policy is policies[1]


def test_family_members_sharing_usage(policy_index: PolicyIndex) -> None:
    members = policy_index.by_family["GPL"]
    assert [member.id for member in members] == ["GPL-2.0-only", "GPL-3.0"]
    assert {member.usage_policy for member in members} == {POLICY_DENY}


def test_family_record_not_indexed_by_id(policy_index: PolicyIndex) -> None:
    assert "" not in policy_index.by_id
    assert policy_index.by_family["BSD"][0].children == ["BSD-2-Clause", "BSD-3-Clause"]


def test_index_is_read_only(policy_index: PolicyIndex) -> None:
    with pytest.raises(TypeError):
        policy_index.by_id["New"] = policy_index.by_id["MIT"]  # type: ignore[index]
    assert isinstance(policy_index.by_family["GPL"], tuple)


def test_lookup_by_id(policy_index: PolicyIndex) -> None:
    assert policy_index.usage_policy_by_id("Apache-2.0") == POLICY_ALLOW
    assert policy_index.usage_policy_by_id("GPL-3.0") == POLICY_DENY
    assert policy_index.usage_policy_by_id("Foo") == POLICY_UNMATCHED
    assert policy_index.usage_policy_by_id("") == POLICY_UNMATCHED
    assert policy_index.find_by_id("Foo") is None


def test_lookup_by_family_name(policy_index: PolicyIndex) -> None:
    assert policy_index.usage_policy_by_family_name("The MIT License") == POLICY_ALLOW
    assert policy_index.usage_policy_by_family_name("GNU GPL v3") == POLICY_DENY
    assert policy_index.usage_policy_by_family_name("mit license") == POLICY_UNMATCHED
    assert policy_index.usage_policy_by_family_name("Proprietary") == POLICY_UNMATCHED


def test_family_name_longest_match_wins(policy_index: PolicyIndex) -> None:
    # both "GPL" and "LGPL" occur in the name
    assert policy_index.find_family_key("LGPL-2.1 with static linking") == "LGPL"
    assert policy_index.usage_policy_by_family_name("LGPL-2.1 with static linking") == POLICY_ALLOW


def test_family_name_tie_prefers_first_family() -> None:
    index = PolicyIndex.build(
        [
            LicensePolicy(id="AAA-1.0", family="AAA", name="a", usage_policy="allow"),
            LicensePolicy(id="BBB-1.0", family="BBB", name="b", usage_policy="deny"),
        ]
    )
    assert index.find_family_key("BBB and AAA") == "AAA"
    assert index.find_family_key("AAA and BBB") == "AAA"


def test_independent_indices() -> None:
    first = PolicyIndex.build([LicensePolicy(id="MIT", family="MIT", name="MIT", usage_policy="allow")])
    second = PolicyIndex.build([LicensePolicy(id="MIT", family="MIT", name="MIT", usage_policy="deny")])
    assert first.usage_policy_by_id("MIT") == POLICY_ALLOW
    assert second.usage_policy_by_id("MIT") == POLICY_DENY
