import io

import pytest

from constparser.cp import Calculator, Environment
from constparser.runtime import createRuntimeStd


def run(source, env=None):
    calc = Calculator()
    env = calc.run_source(source, env)
    return env, calc


@pytest.mark.parametrize("source, expected", [
    ("a = 2 + 3 * 4 ;", "val=14\n"),
    ("a = 10 - 3 - 2 ;", "val=5\n"),
    ("a = -5 + 2 ;", "val=-3\n"),
    ("a = - - 5 ;", "val=5\n"),
    ("a = 1 / 0 ;", "val=inf\n"),
    ("a = 1 / 3 ;", "val=0.333333\n"),
    ("a = 1000000 * 10 ;", "val=1e+07\n"),
    ("a = ;", "val=0\n"),
])
def test_single_statement_output(capsys, source, expected):
    run(source)
    assert capsys.readouterr().out == expected


def test_variables_propagate_forward(capsys):
    env, _ = run("a = 4 ;\nb = a * 2 ;\n")
    assert capsys.readouterr().out == "val=4\nval=8\n"
    assert env.lookup("a") == 4.0
    assert env.lookup("b") == 8.0


def test_reassignment_sees_previous_value(capsys):
    env, _ = run("a = 1; a = a + 1; a = a * 10;")
    assert capsys.readouterr().out == "val=1\nval=2\nval=20\n"
    assert env.lookup("a") == 20.0


def test_undefined_variable_reads_as_zero(capsys):
    _, calc = run("b = undefinedVar + 1 ;")
    captured = capsys.readouterr()
    assert captured.out == "val=1\n"
    assert "undefinedVar" in captured.err
    assert calc.diagnostics.count == 1


def test_names_are_case_sensitive(capsys):
    _, calc = run("a = 1; b = A;")
    assert capsys.readouterr().out == "val=1\nval=0\n"
    assert "invalid variable 'A'" in calc.diagnostics.messages[0]


def test_trailing_letters_after_number_do_not_abort(capsys):
    env, calc = run("a = 12x ;")
    assert capsys.readouterr().out == "val=12\n"
    assert env.lookup("a") == 12.0
    assert calc.diagnostics.count == 2


def test_decimal_literal_keeps_integer_part(capsys):
    run("a = 1.5;")
    assert capsys.readouterr().out == "val=1\n"


def test_end_of_input_mid_expression_halts(capsys):
    env, _ = run("a = 3 +")
    assert capsys.readouterr().out == "val=-1\n"
    assert env.lookup("a") == -1.0


def test_bad_statement_start_resynchronizes(capsys):
    env, calc = run("3 = 4; a = 1;")
    assert capsys.readouterr().out == "val=1\n"
    assert env.lookup("a") == 1.0
    assert calc.diagnostics.count == 4


def test_missing_equals_abandons_statement(capsys):
    env, _ = run("a 5; b = 2;")
    assert capsys.readouterr().out == "val=2\n"
    assert "a" not in env


def test_empty_input(capsys):
    env, calc = run("")
    assert capsys.readouterr().out == ""
    assert len(env) == 0
    assert calc.diagnostics.count == 0


def test_environment_can_be_carried_between_runs(capsys):
    env = Environment()
    run("a = 1;", env)
    run("b = a + 1;", env)
    assert env.lookup("b") == 2.0


def test_fresh_runs_repeat_output(capsys):
    source = "a = 2; b = a * a - 1; c = b / a; d = nope;"
    run(source)
    first = capsys.readouterr()
    run(source)
    second = capsys.readouterr()
    assert first == second
    assert first.out == "val=2\nval=3\nval=1.5\nval=0\n"


def test_custom_runtime_collects_output():
    out, err = io.StringIO(), io.StringIO()
    calc = Calculator(runtime=createRuntimeStd(out, err))
    calc.run(io.StringIO("x = 7 * 6;\ny = z;\n"))
    assert out.getvalue() == "val=42\nval=0\n"
    assert "Semantic error: invalid variable 'z'" in err.getvalue()


def test_long_flat_sum(capsys):
    _, calc = run("a = " + " + ".join(["1"] * 1500) + ";")
    assert capsys.readouterr().out == "val=1500\n"
    assert calc.diagnostics.count == 0


def test_long_mixed_chain(capsys):
    run("a = " + " - ".join(["2 * 3"] * 1200) + ";")
    assert capsys.readouterr().out == "val=-7188\n"


def test_undecodable_byte_is_reported_not_raised(capsys):
    stream = io.TextIOWrapper(io.BytesIO(b"a = 1 \xff;\nb = a + 1;\n"), encoding="utf-8")
    env = Calculator().run(stream)
    captured = capsys.readouterr()
    assert captured.out == "val=1\nval=2\n"
    assert "Lexical error" in captured.err
    assert env.lookup("b") == 2.0
