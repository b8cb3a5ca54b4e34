"""Session cookie helpers"""

from fastapi import Request, Response


def is_secure_request(request: Request) -> bool:
    """True when the inbound request arrived over HTTPS"""
    return request.url.scheme == "https"


def set_session_cookie(
    response: Response, request: Request, name: str, token: str, max_age: int
) -> None:
    response.set_cookie(
        key=name,
        value=token,
        max_age=max_age,
        path="/",
        secure=is_secure_request(request),
        httponly=True,
        samesite="lax",
    )


def clear_session_cookie(response: Response, request: Request, name: str) -> None:
    response.delete_cookie(
        key=name,
        path="/",
        secure=is_secure_request(request),
        httponly=True,
        samesite="lax",
    )
