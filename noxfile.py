from __future__ import annotations

import nox


@nox.session(python="3.12")
def tests(session: nox.Session) -> None:
    session.install("-e", ".[test]")
    session.run("pytest", "-q", *session.posargs)


@nox.session(python="3.12")
def unit(session: nox.Session) -> None:
    session.install("-e", ".[test]")
    session.run("pytest", "-q", "-m", "unit", *session.posargs)


# Alias with version suffix for CI convenience
@nox.session(name="tests-3.11", python="3.11")
def tests_311(session: nox.Session) -> None:
    tests(session)
