from __future__ import annotations

import json
from pathlib import Path

import pytest

from sbom_license.policy import LicensePolicy, PolicyIndex

POLICIES = [
    {"id": "Apache-2.0", "family": "Apache", "name": "Apache License 2.0", "usagePolicy": "allow"},
    {"id": "MIT", "family": "MIT", "name": "MIT License", "usagePolicy": "allow"},
    {"id": "GPL-2.0-only", "family": "GPL", "name": "GPL v2 only", "usagePolicy": "deny"},
    {"id": "GPL-3.0", "family": "GPL", "name": "GPL v3", "usagePolicy": "deny"},
    {"id": "LGPL-2.1-only", "family": "LGPL", "name": "LGPL v2.1 only", "usagePolicy": "allow"},
    {"id": "", "family": "BSD", "name": "BSD family", "usagePolicy": "allow", "children": ["BSD-2-Clause", "BSD-3-Clause"]},
]


@pytest.fixture
def policy_index() -> PolicyIndex:
    return PolicyIndex.build([LicensePolicy.from_dict(entry) for entry in POLICIES])


@pytest.fixture
def policy_file(tmp_path: Path) -> Path:
    path = tmp_path / "license.json"
    path.write_text(
        json.dumps({"policies": POLICIES, "annotations": {"COPYLEFT": "copyleft"}}),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def sbom_file(tmp_path: Path) -> Path:
    document = {
        "bomFormat": "CycloneDX",
        "specVersion": "1.4",
        "components": [
            {
                "name": "requests",
                "version": "2.31.0",
                "purl": "pkg:pypi/requests@2.31.0",
                "licenses": [{"license": {"id": "Apache-2.0"}}],
            },
            {
                "name": "readline",
                "version": "8.2",
                "purl": "pkg:generic/readline@8.2",
                "licenses": [{"license": {"name": "GNU GPL-3.0 or later"}}],
            },
            {
                "name": "dual",
                "version": "1.0",
                "purl": "pkg:npm/dual@1.0",
                "licenses": [{"expression": "(MIT OR GPL-3.0) AND Apache-2.0"}],
            },
            {
                "name": "urllib3",
                "version": "2.0.7",
                "purl": "pkg:pypi/urllib3@2.0.7",
                "licenses": [{"license": {"id": "MIT"}}, {"license": {"id": "Apache-2.0"}}],
            },
            {
                "name": "broken",
                "version": "0.0.1",
                "licenses": [{"license": {"url": "https://example.com/LICENSE"}}],
            },
        ],
    }
    path = tmp_path / "bom.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return path
