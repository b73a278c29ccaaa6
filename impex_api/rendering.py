"""
Jinja2 rendering for email bodies and the HTML status pages.

HTML templates are autoescaped, so user-supplied contact form values are
rendered as text. Plain-text templates (``.txt``) are not escaped.
"""

from __future__ import annotations

from jinja2 import Environment, PackageLoader, StrictUndefined, select_autoescape

_env = Environment(
    loader=PackageLoader("impex_api", "templates"),
    autoescape=select_autoescape(["html"]),
    undefined=StrictUndefined,
    trim_blocks=True,
    lstrip_blocks=True,
)


def render(template_name: str, **context) -> str:
    return _env.get_template(template_name).render(**context)


def render_status_page(
    *, brand_name: str, db_connected: bool, email_ready: bool, port: int
) -> str:
    return render(
        "status_page.html",
        brand_name=brand_name,
        db_connected=db_connected,
        email_ready=email_ready,
        port=port,
    )


def render_not_found_page(*, url: str) -> str:
    return render("not_found.html", url=url)
