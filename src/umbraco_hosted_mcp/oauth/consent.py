"""
Per-client consent screen.

Before redirecting to Umbraco, the user must see which MCP client is
asking for access and approve it. This prevents confused-deputy attacks
where one client rides on consent given to another.
"""

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List

from jinja2 import Environment, FileSystemLoader, select_autoescape
from starlette.responses import HTMLResponse

template_dir = Path(__file__).parent.parent / "templates"
jinja_env = Environment(
    loader=FileSystemLoader(str(template_dir)),
    autoescape=select_autoescape(["html"]),
)

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "Content-Security-Policy": "frame-ancestors 'none'",
    "X-Content-Type-Options": "nosniff",
}


@dataclass
class ConsentScreenOptions:
    client_name: str
    umbraco_base_url: str
    scopes: List[str]
    redirect_uri: str
    action_url: str
    # Consent token echoed back in the form
    state: str


def render_consent_screen(options: ConsentScreenOptions) -> str:
    """Render the consent page HTML. All values are HTML-escaped."""
    return jinja_env.get_template("consent.html").render(**asdict(options))


def consent_response(options: ConsentScreenOptions) -> HTMLResponse:
    """Return the consent page with anti-framing headers."""
    return HTMLResponse(content=render_consent_screen(options), headers=SECURITY_HEADERS)


def render_landing_page(name: str, version: str, umbraco_base_url: str) -> str:
    return jinja_env.get_template("landing.html").render(
        name=name, version=version, umbraco_base_url=umbraco_base_url
    )
