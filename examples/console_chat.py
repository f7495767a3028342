"""Minimal terminal chat against the relay configured in settings.

Type a message and press Enter. `/image <path>` attaches an image to the next
message; an empty line with a staged image sends the image alone. `/quit` exits.
"""

from chat_core import create_session
from chat_core.api.service import load_attachment
from chat_core.domain.exceptions import ValidationError

if __name__ == "__main__":
    session = create_session()
    attachment = None
    while True:
        try:
            line = input("> ")
        except (EOFError, KeyboardInterrupt):
            break
        if line.strip() == "/quit":
            break
        if line.startswith("/image "):
            try:
                attachment = load_attachment(line[len("/image "):].strip())
                print(f"[image staged: {attachment.filename}, {attachment.size} bytes]")
            except ValidationError as e:
                print(f"[error] {e.message}")
            continue
        if session.submit(line, attachment) is not None:
            attachment = None
