"""Request executors and response handling for specinvoke.

Provides the callables a built API hands its finished
:class:`~specinvoke.models.PreparedRequest` to, and the helpers the
command line uses to present what comes back.

Classes:
    :class:`RequestExecutor` -- sends requests with :class:`httpx.AsyncClient`.
    :class:`DryRunExecutor` -- prints requests instead of sending them.

Functions:
    :func:`send_request` -- the default executor of a built API.
    :func:`format_api_response` -- print a response body and status line.
    :func:`raise_for_status` -- map HTTP error statuses to exceptions.

Example::

    from specinvoke.client import RequestExecutor

    async with RequestExecutor(max_retries=2) as executor:
        response = await invocation(Environment(request_executor=executor))
"""

from specinvoke.client.executor import DryRunExecutor, RequestExecutor, send_request
from specinvoke.client.response import format_api_response, raise_for_status

__all__ = [
    "DryRunExecutor",
    "RequestExecutor",
    "format_api_response",
    "raise_for_status",
    "send_request",
]
