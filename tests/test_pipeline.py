import pytest

from pluto.config import TaskConfig
from pluto.exception import ConfigurationError
from pluto.pipeline import build_commands, compile_and_run, derive_output_name


@pytest.mark.parametrize(
    "source, expected",
    [
        ("./main.c", "./main"),
        ("main.c", "main"),
        ("src/app.test.cpp", "src/app"),
        (".hidden.c", ".hidden"),
    ],
)
def test_output_name_truncates_at_first_dot_after_start(source, expected):
    assert derive_output_name(source, TaskConfig()) == expected


def test_explicit_output_wins():
    assert derive_output_name("./main.c", TaskConfig(output="build/app")) == "build/app"


def test_output_name_requires_extension():
    with pytest.raises(ConfigurationError):
        derive_output_name("Makefile", TaskConfig())


def test_build_commands_default_task():
    compile_line, run_line = build_commands("./main.c", TaskConfig())

    assert compile_line == "gcc ./main.c -o ././main"
    assert run_line == "././main"


def test_build_commands_explicit_output_and_args():
    task = TaskConfig(command="clang", args=["-Wall", "-O2"], output="build/app")

    compile_line, run_line = build_commands("main.c", task)

    assert compile_line == "clang main.c -Wall -O2 -o ./build/app"
    assert run_line == "./build/app"


def test_compile_and_run_sends_both_lines_in_order(session, host):
    compile_and_run(session)

    assert session.is_open()
    assert host.processes[session.process]["writes"] == [
        b"gcc ./main.c -o ././main\r",
        b"././main\r",
    ]
    assert len(host.spawned) == 1


def test_compile_and_run_uses_task_config(make_session, host):
    session = make_session(task={"command": "g++", "output": "build/app"})

    compile_and_run(session, "hello.cpp")

    assert host.processes[session.process]["writes"] == [
        b"g++ hello.cpp -o ./build/app\r",
        b"./build/app\r",
    ]


def test_compile_and_run_reuses_open_terminal(session, host):
    session.open()
    process = session.process
    session.close()

    compile_and_run(session)

    assert session.process == process
    assert len(host.processes[process]["writes"]) == 2


def test_compile_and_run_without_current_file(session, host):
    host.current_file_path = ""

    with pytest.raises(ConfigurationError):
        compile_and_run(session)

    assert host.spawned == []
