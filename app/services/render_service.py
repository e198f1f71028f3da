"""Render service - turns (template, color, subdomain) into a full HTML page.

Templates live in app/templates/sites/ and extend sites/_layout.html.
render_site() is a pure function of its three arguments: nothing
time- or request-dependent goes into the output, so the same inputs always
give byte-identical HTML.

It uses its own Jinja environment rather than flask.render_template so it
works outside an app context (CLI, tests, background jobs).
"""

from jinja2 import Environment, PackageLoader, select_autoescape

TEMPLATES = ("basic", "portfolio", "blog")
DEFAULT_TEMPLATE = "basic"

TEMPLATE_TITLES = {
    "basic": "Welcome to My Website",
    "portfolio": "My Portfolio",
    "blog": "My Digital Journal",
}

_env = Environment(
    loader=PackageLoader("app", "templates"),
    autoescape=select_autoescape(["html"]),
    keep_trailing_newline=True,
)


def resolve_template(template):
    """Map a requested template name onto one we can render."""
    name = (template or "").strip().lower()
    return name if name in TEMPLATES else DEFAULT_TEMPLATE


def render_site(template, color, subdomain):
    """Render a tenant site page.

    Unknown template names fall back to "basic". The color is dropped into
    the CSS and markup as given (HTML-escaped, not validated).
    """
    name = resolve_template(template)
    page = _env.get_template(f"sites/{name}.html")
    return page.render(
        template=name,
        title=TEMPLATE_TITLES[name],
        color=color,
        subdomain=subdomain,
    )


def render_not_found(subdomain, main_url):
    """Tenant-not-found page: names the missing subdomain, links home."""
    page = _env.get_template("sites/not_found.html")
    return page.render(subdomain=subdomain, main_url=main_url)
