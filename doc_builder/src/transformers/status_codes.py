"""Response status codes documented per operation."""

from typing import Dict, List, Tuple

from shared.models.documentation import HttpMethod, StatusCode

STATUS_MESSAGES: Dict[str, str] = {
    "200": "OK",
    "201": "Created",
    "204": "No Content",
    "400": "Client Error",
    "401": "Unauthorized",
    "403": "Forbidden",
    "404": "Not Found",
    "406": "Not Acceptable",
    "415": "Unsupported Media Type",
    "422": "Unprocessable Entity",
}

# Content negotiation runs ahead of every handler
ALWAYS: Tuple[str, ...] = ("406", "415")

BASE_CODES: Dict[HttpMethod, Tuple[str, ...]] = {
    HttpMethod.GET: ("200",),
    HttpMethod.POST: ("201",),
    HttpMethod.PUT: ("200",),
    HttpMethod.PATCH: ("200",),
    HttpMethod.DELETE: ("204",),
}

AUTHORIZATION_CODES: Dict[HttpMethod, Tuple[str, ...]] = {
    HttpMethod.GET: (),
    HttpMethod.POST: ("400", "401", "403", "422"),
    HttpMethod.PUT: ("400", "401", "403", "422"),
    HttpMethod.PATCH: ("400", "401", "403", "422"),
    HttpMethod.DELETE: ("401", "403"),
}

ENTITY_CODES: Dict[HttpMethod, Tuple[str, ...]] = {
    HttpMethod.GET: ("404",),
}


def status_code(code: str) -> StatusCode:
    return StatusCode(code=code, message=STATUS_MESSAGES[code])


class StatusCodeResolver:
    """
    Maps an operation to the response codes it can produce.

    The result is always: 406 and 415, the method's success code, 404 for
    entity-scoped GET, then the authorization codes when the operation
    requires authorization. The order is fixed so that output is
    reproducible.
    """

    def resolve(
        self,
        http_method: HttpMethod,
        requires_authorization: bool,
        is_entity_operation: bool,
    ) -> List[StatusCode]:
        method = HttpMethod(http_method)

        codes = list(ALWAYS) + list(BASE_CODES[method])
        if is_entity_operation:
            codes.extend(ENTITY_CODES.get(method, ()))
        if requires_authorization:
            codes.extend(AUTHORIZATION_CODES[method])

        return [status_code(code) for code in codes]
