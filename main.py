"""WSGI entrypoint for local development."""
from __future__ import annotations

import os

from loginflow import create_app


app = create_app()


def main() -> None:
    app.run(debug=True, port=int(os.getenv("PORT", "5000")), threaded=True)


if __name__ == "__main__":
    main()
