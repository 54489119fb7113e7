"""Entry point: delegates to the CLI app (one module per command)."""

from rich.traceback import install

from graph_cli.cli import app


def run() -> None:
    install(show_locals=False, max_frames=5, word_wrap=True)
    app()


if __name__ == "__main__":
    run()
