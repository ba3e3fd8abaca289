"""
Interactive prompts used by the interactive client.

All readers take an input function so they can be driven from tests;
EOFError from it propagates to the caller, which ends the session.
"""

from typing import Callable, Optional

from .request import HTTP_METHODS

InputFunc = Callable[[str], str]

BODY_METHODS = ("POST", "PUT", "PATCH")

_CHAR_NAMES = {
    " ": "White space",
    "\t": "White space",
    "\r": "Carriage return",
}


def read_string(prompt: str, disallowed: str = "", input_func: InputFunc = input) -> str:
    """Read one line, dropping (and reporting) every disallowed character."""
    line = input_func(prompt)
    kept = []
    for char in line:
        if char in disallowed:
            name = _CHAR_NAMES.get(char)
            if name:
                print(f"Error! {name} is not allowed")
            else:
                print(f"Error! '{char}' is not allowed")
            continue
        kept.append(char)
    return "".join(kept)


def read_int(prompt: str, input_func: InputFunc = input) -> int:
    value = input_func(prompt)
    while True:
        try:
            return int(value.strip())
        except ValueError:
            value = input_func("Invalid input. Please enter an integer: ")


def choose_method(input_func: InputFunc = input) -> str:
    """Show the numbered method menu until a valid choice is made."""
    menu = "\n".join(f"{number}. {method}" for number, method in enumerate(HTTP_METHODS, start=1))
    while True:
        print("Enter the HTTP method you want to use:")
        print(menu + "\n")
        choice = read_int("Your choice: ", input_func)
        if 1 <= choice <= len(HTTP_METHODS):
            return HTTP_METHODS[choice - 1]


def ask_path(input_func: InputFunc = input) -> str:
    path = ""
    while not path:
        path = read_string("Please enter the endpoint to which you want to send the request: ",
                           " \t\r", input_func)
    return path


def ask_body(method: str, input_func: InputFunc = input) -> Optional[str]:
    # GET and DELETE are sent without a body
    if method not in BODY_METHODS:
        return None
    return read_string("Please enter the request body (JSON): ", "\r", input_func)


def ask_to_continue(input_func: InputFunc = input) -> bool:
    answer = input_func("\nDo you want to send another request? (y/n): ").strip().lower()
    while answer not in ("y", "n"):
        answer = input_func("Invalid input. Please enter 'y' or 'n': ").strip().lower()
    return answer == "y"
