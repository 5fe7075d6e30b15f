"""Short link redirect endpoint."""

from html import escape
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from lp_api.api.deps import get_resolver
from lp_api.deployment.redirects import LiveRedirect, RedirectResolver, StillDeploying

logger = structlog.get_logger()
router = APIRouter()

NO_CACHE_HEADERS = {"Cache-Control": "no-cache, no-store, must-revalidate"}

DEPLOYING_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <meta http-equiv="refresh" content="10">
  <title>Deploying {name}</title>
  <style>
    body {{ font-family: system-ui, sans-serif; display: flex; align-items: center;
           justify-content: center; min-height: 100vh; margin: 0; background: #f5f5f5; }}
    main {{ text-align: center; padding: 2rem; }}
  </style>
</head>
<body>
  <main>
    <h1>{name} is being deployed</h1>
    <p>This page will be available in a moment. It refreshes automatically.</p>
  </main>
</body>
</html>
"""


def deploying_page(project_name: str) -> str:
    return DEPLOYING_PAGE.format(name=escape(project_name))


@router.get("/s/{code}", include_in_schema=False)
async def resolve_short_link(
    code: str,
    resolver: Annotated[RedirectResolver, Depends(get_resolver)],
) -> Response:
    """Redirect a short link to its live page.

    Unknown codes and lookup failures redirect to the home page.
    """
    try:
        decision = await resolver.resolve(code)
    except Exception as e:
        logger.error("Short link lookup failed", code=code, error=str(e))
        return RedirectResponse("/", status_code=302)

    if isinstance(decision, LiveRedirect):
        return RedirectResponse(decision.url, status_code=302)

    if isinstance(decision, StillDeploying):
        return HTMLResponse(
            deploying_page(decision.project_name),
            status_code=200,
            headers=NO_CACHE_HEADERS,
        )

    logger.info("Short link not found", code=code)
    return RedirectResponse("/", status_code=302)
