"""playfetch -- authenticated client for the store's ``/fdfe`` API.

The package logs in with account credentials, issues API calls that return a
binary protobuf envelope, and deduplicates identical in-flight requests
through a fingerprint-keyed cache that also absorbs server prefetch hints.

Typical use::

    from playfetch import RequestEngine, resolve_config

    async with RequestEngine(resolve_config()) as engine:
        await engine.login()
        doc = await engine.package_details("com.example.app")

Modules:
    app: Typer CLI entry point.
    models: Pydantic models shared across the package.
    config: Configuration resolution (flags, env, config file).
    exceptions: Closed error taxonomy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting and logging setup.
"""

from playfetch.client.engine import RequestEngine
from playfetch.config import resolve_config
from playfetch.models import ClientConfig

__version__ = "0.1.0"

__all__ = ["ClientConfig", "RequestEngine", "resolve_config", "__version__"]
