import pytest

from rawclient.prompt import ask_body, ask_path, ask_to_continue, choose_method, read_int, read_string


def scripted(*lines):
    answers = iter(lines)

    def input_func(prompt=""):
        try:
            return next(answers)
        except StopIteration:
            raise EOFError
    return input_func


def test_read_string_drops_disallowed(capsys):
    value = read_string("> ", " \t\r", scripted("ex ample\t.com"))

    assert value == "example.com"
    out = capsys.readouterr().out
    assert out.count("Error! White space is not allowed") == 2


def test_read_string_names_literal_character(capsys):
    assert read_string("> ", "#", scripted("a#b")) == "ab"
    assert "Error! '#' is not allowed" in capsys.readouterr().out


def test_read_int_reprompts():
    assert read_int("> ", scripted("abc", "", " 42 ")) == 42


def test_choose_method_rejects_out_of_range():
    assert choose_method(scripted("0", "9", "4")) == "PATCH"


@pytest.mark.parametrize("choice, method", [("1", "GET"), ("2", "POST"), ("5", "DELETE")])
def test_choose_method_menu(choice, method):
    assert choose_method(scripted(choice)) == method


def test_ask_path_requires_value():
    assert ask_path(scripted("", "/todos/1")) == "/todos/1"


@pytest.mark.parametrize("method", ["GET", "DELETE"])
def test_no_body_for_get_and_delete(method):
    assert ask_body(method, scripted()) is None


def test_body_for_post():
    assert ask_body("POST", scripted('{"title": "x"}')) == '{"title": "x"}'


def test_ask_to_continue_only_accepts_y_or_n():
    assert ask_to_continue(scripted("maybe", "Y")) is True
    assert ask_to_continue(scripted("n")) is False


def test_eof_propagates():
    with pytest.raises(EOFError):
        read_int("> ", scripted())
