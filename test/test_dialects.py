import shutil
import subprocess
from typing import Any, List

import pytest

from cmd_sh.dialects import (
    NU_NON_ZERO_EXIT,
    SHELLS,
    Nushell,
    Powershell,
    Zshell,
    get_shell,
)
from cmd_sh.shell import ShellBackend, ShellOutput, file_load

ADVERSARIAL = [
    "",
    "simple",
    "two words",
    "it's",
    "'",
    "''",
    "\\",
    "back\\slash",
    "a\\'b",
    "\\n is not a newline",
    "trailing\\",
    '"double" quotes',
    "$HOME `tick` $(echo no) ${PATH}",
    "'#",
    "r#'raw'#",
    "'## and '###",
    "multi\nline\n",
    "%s %d",
]


def run_shell(
    command: List[str], script: str, tmpdir: Any, extension: str, input: str = ""
) -> "subprocess.CompletedProcess[bytes]":
    path = tmpdir.join(f"script.{extension}")
    path.write_text(script, encoding="utf-8")
    return subprocess.run(
        [*command, str(path)],
        input=input.encode("utf-8"),
        capture_output=True,
    )


def run_script(
    command: List[str], script: str, tmpdir: Any, extension: str, input: str = ""
) -> str:
    result = run_shell(command, script, tmpdir, extension, input=input)
    assert result.returncode == 0, result.stderr.decode("utf-8")
    return result.stdout.decode("utf-8")


def needs(binary: str) -> Any:
    return pytest.mark.skipif(shutil.which(binary) is None, reason=f"{binary} missing")


def test_registry() -> None:
    assert set(SHELLS) == {"nu", "pwsh", "zsh"}
    assert isinstance(get_shell("pwsh"), Powershell)
    assert get_shell("nu").extension == "nu"
    assert get_shell("pwsh").extension == "ps1"
    with pytest.raises(ValueError):
        get_shell("bash")


def test_unimplemented_backend_is_fatal() -> None:
    shell = ShellBackend()
    with pytest.raises(NotImplementedError):
        shell.to_inner("x")
    with pytest.raises(NotImplementedError):
        ShellOutput(shell).print("x")
    with pytest.raises(NotImplementedError):
        shell.gated_func("x", [])


def test_nushell_statements() -> None:
    nu = Nushell()
    assert nu.to_inner("it's") == "r#'it's'#"
    assert nu.to_inner("a'#b") == "r##'a'#b'##"
    assert nu.to_inner("'## '#") == "r###''## '#'###"
    assert nu.to_outer("ls") == "`ls`"
    assert nu.trace() == ""
    assert nu.var_set(["app", "debug"], "r#'1'#") == "$env.APP_DEBUG = r#'1'#"
    assert nu.var_set_arr("paths", ["'a'", "'b'"]) == "$env.PATHS = [ 'a', 'b' ]"
    assert nu.var_unset(["x"]) == "hide-env X"
    assert Nushell.exec_str("'ls'") == "nu --no-config-file -c 'ls'"


def test_powershell_statements() -> None:
    pwsh = Powershell()
    assert pwsh.to_inner("it's") == "'it''s'"
    assert pwsh.to_inner("it’s") == "'it’’s'"
    assert pwsh.to_inner("back\\slash") == "'back\\slash'"
    assert pwsh.to_outer("ls") == "'ls'"
    assert pwsh.trace() == "Set-PSDebug -Trace 1"
    assert pwsh.var_set(["app", "debug"], "'1'") == "$APP_DEBUG = '1'"
    assert pwsh.var_set_arr("paths", ["'a'", "'b'"]) == "$PATHS = @( 'a', 'b' )"
    assert pwsh.var_unset("x") == "Remove-Variable X -ErrorAction SilentlyContinue"
    assert Powershell.exec_str("'ls'") == "pwsh -noprofile -c 'ls'"


def test_zshell_statements() -> None:
    zsh = Zshell()
    assert zsh.to_inner("it's") == "'it'\\''s'"
    assert zsh.to_inner("a\\'b") == "'a\\\\'\\''b'"
    assert zsh.to_outer("ls") == "'ls'"
    assert zsh.trace() == "set -x"
    assert zsh.var_set(["app", "dry-run"], "'1'") == "APP_DRY_RUN='1'"
    assert zsh.var_set_arr("paths", ["'a'", "'b'"]) == "PATHS=( 'a' 'b' )"
    assert zsh.var_unset("x") == "unset X"
    assert Zshell.exec_str("'ls'") == "zsh --no-rcs -c 'ls'"


def test_print_channels() -> None:
    client = ShellOutput(Powershell())
    assert client.print(["a", "it's"]) == ["opPrint 'a'", "opPrint 'it''s'"]
    assert client.print_cmd("a") == ["opPrintCmd 'a'"]
    assert client.print_err("a") == ["opPrintErr 'a'"]
    assert client.print_info("a") == ["opPrintInfo 'a'"]
    assert client.print_succ("a") == ["opPrintSucc 'a'"]
    assert client.print_warn("a") == ["opPrintWarn 'a'"]
    # Printing does not touch the buffer
    assert client.lines == []


def test_build() -> None:
    client = ShellOutput(Zshell())
    assert client.build() == ""
    client.add("one").add(["two", "three"])
    first = client.build()
    assert first == "one\n\ntwo\nthree\n"
    client.add(client.print("four"))
    assert client.build() == first + "\nopPrint 'four'\n"


@pytest.mark.parametrize("shell", [Nushell, Powershell, Zshell])
def test_gated_func_wraps_lines(shell: Any) -> None:
    lines = shell().gated_func("deploy it", ["LINE ONE", "LINE TWO"])
    text = "\n".join(lines)
    assert "? deploy it [y, [n]]" in text
    assert "YES" in text
    assert lines.index("LINE ONE") + 1 == lines.index("LINE TWO")


def test_nushell_gate_matches_error_code() -> None:
    lines = Nushell().gated_func("x", [])
    assert any(NU_NON_ZERO_EXIT in line and "$e.json" in line for line in lines)
    assert not any("downcase" in line or "$e.msg ==" in line for line in lines)


def test_file_load(tmpdir: Any) -> None:
    tmpdir.mkdir("cli").mkdir("pwsh").mkdir("sub").join("run.ps1").write("Get-Date\n")
    pwsh = Powershell()
    assert file_load(pwsh, ["sub", "run"], base=[str(tmpdir)]) == "Get-Date\n"
    assert file_load(pwsh, ["sub", "run.ps1"], base=[str(tmpdir)]) == "Get-Date\n"
    assert file_load(pwsh, ["missing"], base=[str(tmpdir)]) == ""

    requested = []

    def loader(path: str) -> Any:
        requested.append(path)
        return None

    assert file_load(Zshell(), ["a", "b"], loader=loader) == ""
    assert requested == ["./cli/zsh/a/b.zsh"]


@needs("zsh")
@pytest.mark.parametrize("value", ADVERSARIAL)
def test_zsh_round_trip(value: str, tmpdir: Any) -> None:
    script = f"print -- {Zshell().to_inner(value)}\n"
    assert run_script(["zsh", "--no-rcs"], script, tmpdir, "zsh") == value + "\n"


@needs("pwsh")
@pytest.mark.parametrize("value", ADVERSARIAL + ["‘smart’ ‚quotes‛"])
def test_pwsh_round_trip(value: str, tmpdir: Any) -> None:
    script = f"[Console]::Out.Write({Powershell().to_inner(value)})\n"
    output = run_script(["pwsh", "-noprofile", "-File"], script, tmpdir, "ps1")
    assert output == value


@needs("nu")
@pytest.mark.parametrize("value", ADVERSARIAL)
def test_nu_round_trip(value: str, tmpdir: Any) -> None:
    script = f"print -n {Nushell().to_inner(value)}\n"
    assert run_script(["nu", "--no-config-file"], script, tmpdir, "nu") == value


GATE_ANSWERS = [
    ("n\n", False, False),
    ("y\n", False, True),
    ("anything\n", False, True),
    ("n\n", True, True),
]


@needs("zsh")
@pytest.mark.parametrize("answer, yes, ran", GATE_ANSWERS)
def test_zsh_gate(answer: str, yes: bool, ran: bool, tmpdir: Any) -> None:
    zsh = Zshell()
    client = ShellOutput(zsh)
    if yes:
        client.add(zsh.var_set("yes", zsh.to_inner("1")))
    client.add(zsh.gated_func("it's", ["print first", "print second"]))
    output = run_script(
        ["zsh", "--no-rcs"], client.build(), tmpdir, "zsh", input=answer
    )
    assert output == ("first\nsecond\n" if ran else "")


@needs("pwsh")
@pytest.mark.parametrize("answer, yes, ran", GATE_ANSWERS)
def test_pwsh_gate(answer: str, yes: bool, ran: bool, tmpdir: Any) -> None:
    pwsh = Powershell()
    client = ShellOutput(pwsh)
    if yes:
        client.add(pwsh.var_set("yes", pwsh.to_inner("1")))
    lines = ["Write-Output 'ran-first'", "Write-Output 'ran-second'"]
    client.add(pwsh.gated_func("it's", lines))
    output = run_script(
        ["pwsh", "-noprofile", "-File"], client.build(), tmpdir, "ps1", input=answer
    )
    if ran:
        assert output.index("ran-first") < output.index("ran-second")
    else:
        assert "ran-" not in output


@needs("nu")
@pytest.mark.parametrize("answer, yes, ran", GATE_ANSWERS)
def test_nu_gate(answer: str, yes: bool, ran: bool, tmpdir: Any) -> None:
    nu = Nushell()
    client = ShellOutput(nu)
    if yes:
        client.add(nu.var_set("yes", nu.to_inner("1")))
    client.add(nu.gated_func("it's", ["print 'ran-first'", "print 'ran-second'"]))
    output = run_script(
        ["nu", "--no-config-file"], client.build(), tmpdir, "nu", input=answer
    )
    if ran:
        assert output.index("ran-first") < output.index("ran-second")
    else:
        assert "ran-" not in output


@needs("nu")
def test_nu_gate_absorbs_non_zero_exit(tmpdir: Any) -> None:
    nu = Nushell()
    client = ShellOutput(nu)
    client.add(nu.var_set("yes", nu.to_inner("1")))
    lines = ["print 'ran-first'", "^false", "print 'ran-second'"]
    client.add(nu.gated_func("x", lines))
    client.add("print 'done'")
    result = run_shell(["nu", "--no-config-file"], client.build(), tmpdir, "nu")
    output = result.stdout.decode("utf-8")
    assert result.returncode == 0, result.stderr.decode("utf-8")
    assert "ran-first" in output
    assert "ran-second" not in output
    assert "done" in output


@needs("nu")
def test_nu_gate_reraises_other_errors(tmpdir: Any) -> None:
    nu = Nushell()
    client = ShellOutput(nu)
    client.add(nu.var_set("yes", nu.to_inner("1")))
    client.add(nu.gated_func("x", ["error make { msg: 'boom' }"]))
    client.add("print 'done'")
    result = run_shell(["nu", "--no-config-file"], client.build(), tmpdir, "nu")
    assert result.returncode != 0
    assert "boom" in result.stderr.decode("utf-8")
    assert "done" not in result.stdout.decode("utf-8")
