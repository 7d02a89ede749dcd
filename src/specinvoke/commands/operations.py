"""``specinvoke operations`` -- list the operations of an OpenAPI document."""

from __future__ import annotations

import typer

from specinvoke.api import create_api
from specinvoke.exceptions import SpecinvokeError
from specinvoke.output import error, get_output
from specinvoke.parser.loader import load_document


def operations_command(
    spec: str = typer.Argument(..., help="OpenAPI document URL or file path."),
) -> None:
    """List every operation with its method, path and deprecation status.

    Example::

        specinvoke operations ./petstore.yaml
        specinvoke --json operations https://petstore3.swagger.io/api/v3/openapi.json
    """
    try:
        api = create_api(load_document(spec), document_uri=spec)
    except SpecinvokeError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    headers = ["Operation", "Method", "Path", "Summary", "Deprecated"]
    rows: list[list[str]] = []
    for operation in sorted(api.values(), key=lambda o: (o.path, o.method)):
        rows.append([
            operation.operation_id,
            operation.method.upper(),
            operation.path,
            operation.summary or "-",
            "Yes" if operation.deprecated else "",
        ])

    get_output().print_table(
        headers, rows, title=f"{api.info.title} -- Operations ({len(rows)})"
    )
