from packforge.domain.result import Result
from packforge.domain.diagnostics import Diagnostic, Severity


def test_exit_code_precedence_exec_over_validation():
    r = Result(diagnostics=[
        Diagnostic(code="VAR_TYPE_MISMATCH", rule="r", severity=Severity.ERROR, message="v"),
        Diagnostic(code="PACK_FETCH_FAILED", rule="r", severity=Severity.ERROR, message="e", is_execution=True),
    ])
    assert r.exit_code == 3


def test_warnings_do_not_fail():
    r = Result(diagnostics=[Diagnostic(code="VAR_UNKNOWN", rule="r", severity=Severity.WARN, message="w")])
    assert r.exit_code == 0
    assert not r.has_errors
