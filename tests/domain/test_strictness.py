from packforge.domain.diagnostics import Diagnostic, Severity
from packforge.domain.strictness import apply_strictness


def test_strictness_only_upgrades_upgradeable_warnings():
    diags = [
        Diagnostic(
            code="VAR_UNKNOWN",
            rule="variables.unknown",
            severity=Severity.WARN,
            message="warn",
            upgradeable=True,
        ),
        Diagnostic(
            code="VAR_MISSING_REQUIRED",
            rule="variables.required",
            severity=Severity.WARN,
            message="warn",
        ),
        Diagnostic(code="E", rule="r", severity=Severity.ERROR, message="err"),
    ]
    strict = apply_strictness(diags, strict=True)
    assert [d.severity.value for d in strict] == ["error", "warn", "error"]

    non_strict = apply_strictness(diags, strict=False)
    assert [d.severity.value for d in non_strict] == ["warn", "warn", "error"]
