"""Command-line client for the glacial-lake telemetry pipeline service."""

# ``cli.app`` stays the module, not the Typer instance, so tests can patch
# ``cli.app.ApiClient``. Run the CLI through the ``glof`` entry point.

__all__: list[str] = []
