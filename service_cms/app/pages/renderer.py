"""
HTML rendering for pages and the informational screens.

Everything that comes from the database or the request is escaped here;
colors go through the hex validator and links through the URL allow-list.
"""

from html import escape
from typing import Iterable, List, Optional

from ..settings.provider import SiteSettings
from ..theme.validators import validate_hex_color, validate_url
from .models import Page, Section

MAIN_NAV_SIZE = 6

DEFAULT_SITE_NAME = "Your Website"
DEFAULT_SITE_DESCRIPTION = "Creating amazing digital experiences for businesses worldwide."
DEFAULT_MAINTENANCE_MESSAGE = "We are currently performing scheduled maintenance to improve your experience."
DEFAULT_ERROR_TITLE = "Database Connection Error"
DEFAULT_ERROR_MESSAGE = "We're experiencing technical difficulties. Please try again later."


def _text(value: Optional[str]) -> str:
    return escape(value or "")


def page_url(slug: str, base_url: str = "") -> str:
    """Clean URL for a page; the home page lives at the site root."""
    base = base_url.rstrip("/")
    if slug == "home":
        return f"{base}/"
    return f"{base}/{slug}"


def resolve_link(url: Optional[str], base_url: str = "") -> str:
    """Absolute http(s) links pass through, site paths are joined to the base URL, anything else is dropped."""
    if not url:
        return ""
    url = url.strip()
    if url.startswith("#"):
        return url
    if url.startswith("/"):
        return base_url.rstrip("/") + url
    absolute = validate_url(url)
    if absolute:
        return absolute
    if ":" in url.split("/", 1)[0]:
        return ""
    # stored uploads are relative paths such as "uploads/abc.jpg"
    return f"{base_url.rstrip('/')}/{url}"


def _document(title: str, body: str, *, description: str = "", head: str = "") -> str:
    meta = f'<meta name="description" content="{escape(description)}">' if description else ""
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n<head>\n'
        '<meta charset="UTF-8">\n'
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        f"<title>{escape(title)}</title>\n{meta}{head}\n"
        "</head>\n<body>\n"
        f"{body}\n"
        "</body>\n</html>\n"
    )


def render_navigation(pages: Iterable[Page], current_slug: str, base_url: str = "") -> str:
    pages = list(pages)
    main, dropdown = pages[:MAIN_NAV_SIZE], pages[MAIN_NAV_SIZE:]

    def item(page: Page) -> str:
        active = ' class="active"' if page.slug == current_slug else ""
        return f'<li{active}><a href="{escape(page_url(page.slug, base_url))}">{_text(page.title)}</a></li>'

    parts = ['<nav class="site-nav"><ul>']
    parts.extend(item(page) for page in main)
    if dropdown:
        parts.append('<li class="dropdown"><span>More</span><ul>')
        parts.extend(item(page) for page in dropdown)
        parts.append("</ul></li>")
    parts.append("</ul></nav>")
    return "".join(parts)


def render_section(section: Section, base_url: str = "") -> str:
    background = validate_hex_color(section.background_color)
    color = validate_hex_color(section.text_color, fallback="#000000")
    parts = [
        f'<section class="section section-{escape(section.section_type)}" '
        f'style="background-color: {background}; color: {color};">'
    ]
    if section.title:
        parts.append(f"<h2>{_text(section.title)}</h2>")
    if section.subtitle:
        parts.append(f'<p class="subtitle">{_text(section.subtitle)}</p>')
    if section.image_url:
        src = resolve_link(section.image_url, base_url)
        if src:
            parts.append(f'<img src="{escape(src)}" alt="{_text(section.title)}">')
    if section.content:
        parts.append(f'<div class="content">{_text(section.content)}</div>')
    if section.button_text:
        href = resolve_link(section.button_url, base_url) or "#"
        parts.append(f'<a class="btn btn-primary" href="{escape(href)}">{_text(section.button_text)}</a>')
    parts.append("</section>")
    return "".join(parts)


def render_page(
    page: Page,
    sections: List[Section],
    settings: SiteSettings,
    *,
    navigation: Optional[List[Page]] = None,
    show_navigation: bool = True,
    show_maintenance_banner: bool = False,
    base_url: str = "",
) -> str:
    """Full HTML document for a page."""
    site_name = settings.get("site_name", DEFAULT_SITE_NAME)
    description = page.meta_description or settings.get("site_description", DEFAULT_SITE_DESCRIPTION)

    body: List[str] = []
    if show_maintenance_banner:
        body.append(
            '<div class="maintenance-banner">Maintenance mode is active. '
            "Visitors currently see the maintenance page.</div>"
        )
    body.append(f'<header><a class="site-name" href="{escape(page_url("home", base_url))}">{_text(site_name)}</a>')
    if show_navigation and navigation:
        body.append(render_navigation(navigation, page.slug, base_url))
    body.append("</header>")
    body.append("<main>")
    body.extend(render_section(section, base_url) for section in sections)
    body.append("</main>")
    body.append(f"<footer><p>&copy; {_text(site_name)}</p></footer>")

    return _document(f"{page.title} | {site_name}", "\n".join(body), description=description)


def render_not_found(settings: SiteSettings, base_url: str = "") -> str:
    site_name = settings.get("site_name", DEFAULT_SITE_NAME)
    body = (
        '<div class="error-page"><h1>404</h1>'
        "<p>The page you are looking for could not be found.</p>"
        f'<a href="{escape(page_url("home", base_url))}">Back to {_text(site_name)}</a></div>'
    )
    return _document(f"Page Not Found | {site_name}", body)


def render_maintenance(settings: SiteSettings) -> str:
    site_name = settings.get("site_name", DEFAULT_SITE_NAME)
    message = settings.get("maintenance_message", DEFAULT_MAINTENANCE_MESSAGE)
    eta = settings.get("maintenance_eta", "")
    contact_email = settings.get("contact_email", "")

    parts = [
        '<div class="maintenance">',
        f"<h1>{_text(site_name)}</h1>",
        "<h2>We'll be back soon</h2>",
        f"<p>{_text(message)}</p>",
    ]
    if eta:
        parts.append(f'<p class="eta">Expected back: {_text(eta)}</p>')
    if contact_email:
        parts.append(f'<p class="contact">Contact: {_text(contact_email)}</p>')
    parts.append("</div>")
    return _document(f"Maintenance | {site_name}", "".join(parts), head='<meta name="robots" content="noindex">')


def render_error_page(title: Optional[str], message: Optional[str], debug: str = "") -> str:
    title = title or DEFAULT_ERROR_TITLE
    message = message or DEFAULT_ERROR_MESSAGE
    parts = [
        '<div class="error-container">',
        f"<h1>{_text(title)}</h1>",
        f"<p>{_text(message)}</p>",
        '<a href="/">Try again</a>',
    ]
    if debug:
        parts.append(f'<pre class="debug">{_text(debug)}</pre>')
    parts.append("</div>")
    return _document(title, "".join(parts))


def render_install_check(site_name: str = DEFAULT_SITE_NAME) -> str:
    body = (
        '<div class="container">'
        "<h1>Installation Directory Found</h1>"
        f"<p>For security reasons, {_text(site_name)} cannot be accessed while the installation directory exists.</p>"
        "<ol><li>Delete or rename the <code>install</code> directory</li><li>Refresh this page</li></ol>"
        "<p>Once removed, your website will function normally.</p>"
        "</div>"
    )
    return _document(f"Installation Check | {site_name}", body, head='<meta http-equiv="refresh" content="30">')
