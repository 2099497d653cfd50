# Copyright 2025 CrownOps Engineering
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


from __future__ import annotations

import json

from hypothesis import strategies as st

from cargo_phabricator.core.model_types import Severity, TestStatus
from cargo_phabricator.core.type_aliases import LintCode, ReportPath, TestName
from cargo_phabricator.core.types import CompileMessage, SourceSpan, TestOutcome


def json_values() -> st.SearchStrategy[object]:
    """Return a strategy for arbitrary JSON documents."""
    scalars = st.one_of(
        st.none(),
        st.booleans(),
        st.integers(),
        st.floats(allow_nan=False, allow_infinity=False),
        st.text(max_size=20),
    )
    return st.recursive(
        scalars,
        lambda children: st.one_of(
            st.lists(children, max_size=4),
            st.dictionaries(st.text(max_size=10), children, max_size=4),
        ),
        max_leaves=20,
    )


def _tagged_objects() -> st.SearchStrategy[str]:
    keys = st.sampled_from(["reason", "type", "message", "event", "name", "spans", "level", "mismatches"])
    tags = st.sampled_from(["compiler-message", "compiler-artifact", "test", "suite", "build-finished"])
    return st.dictionaries(keys, st.one_of(tags, json_values()), max_size=6).map(json.dumps)


def output_lines() -> st.SearchStrategy[str]:
    """Strategy mixing free text, arbitrary JSON and near-miss cargo records."""
    return st.one_of(
        st.text(max_size=80),
        json_values().map(json.dumps),
        _tagged_objects(),
    )


def compile_messages() -> st.SearchStrategy[CompileMessage]:
    """Return a strategy for compile messages over a handful of files."""
    spans = st.builds(
        lambda path, line, column: SourceSpan(
            path=ReportPath(path),
            line_start=line,
            column_start=column,
            line_end=line,
            column_end=None,
        ),
        st.sampled_from(["src/lib.rs", "src/main.rs", "tests/it.rs"]),
        st.integers(min_value=1, max_value=50),
        st.one_of(st.none(), st.integers(min_value=1, max_value=80)),
    )
    return st.builds(
        CompileMessage,
        severity=st.sampled_from(list(Severity)),
        message=st.sampled_from(["unused variable", "unused import", "mismatched types"]),
        span=st.one_of(st.none(), spans),
        code=st.one_of(st.none(), st.sampled_from([LintCode("E0308"), LintCode("unused_variables")])),
        rendered=st.one_of(st.none(), st.text(max_size=40)),
    )


def outcomes() -> st.SearchStrategy[TestOutcome]:
    """Return a strategy for test outcomes over a small pool of names."""
    return st.builds(
        TestOutcome,
        name=st.sampled_from([TestName("a::one"), TestName("a::two"), TestName("b::three")]),
        status=st.sampled_from(list(TestStatus)),
        duration=st.one_of(st.none(), st.floats(min_value=0, max_value=10)),
        message=st.one_of(st.none(), st.text(max_size=20)),
    )


