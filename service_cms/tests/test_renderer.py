"""
Unit tests for page rendering.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_cms.app.pages.models import Page, Section
from service_cms.app.pages.renderer import (
    render_error_page,
    render_install_check,
    render_maintenance,
    render_not_found,
    render_page,
    resolve_link,
)
from service_cms.app.settings.provider import SiteSettings


class TestRenderPage:

    @pytest.fixture
    def page(self):
        return Page(id=1, title="About", slug="about", meta_description="About Acme")

    @pytest.fixture
    def settings(self):
        return SiteSettings({"site_name": "Acme"})

    def test_fields_are_escaped(self, page, settings):
        section = Section(id=1, page_id=1, section_type="text", title="<script>alert(1)</script>", content="a & b")

        html = render_page(page, [section], settings)

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
        assert "a &amp; b" in html

    def test_invalid_section_colors_fall_back(self, page, settings):
        section = Section(
            id=1, page_id=1, section_type="hero",
            background_color="red;position:fixed", text_color="#12345"
        )

        html = render_page(page, [section], settings)

        assert "background-color: #ffffff; color: #000000;" in html
        assert "position:fixed" not in html

    def test_unsafe_button_link_is_dropped(self, page, settings):
        section = Section(
            id=1, page_id=1, section_type="cta",
            button_text="Click", button_url="javascript:alert(1)"
        )

        html = render_page(page, [section], settings)

        assert "javascript:" not in html
        assert 'href="#"' in html

    def test_navigation_overflow_goes_to_dropdown(self, page, settings):
        navigation = [Page(id=i, title=f"Page {i}", slug=f"page-{i}") for i in range(8)]

        html = render_page(page, [], settings, navigation=navigation)

        main, dropdown = html.split('<li class="dropdown">')
        assert "Page 5" in main
        assert "Page 6" in dropdown
        assert "Page 7" in dropdown

    def test_navigation_hidden(self, page, settings):
        navigation = [Page(id=2, title="Contact", slug="contact")]
        html = render_page(page, [], settings, navigation=navigation, show_navigation=False)
        assert "site-nav" not in html

    def test_maintenance_banner(self, page, settings):
        assert "maintenance-banner" in render_page(page, [], settings, show_maintenance_banner=True)
        assert "maintenance-banner" not in render_page(page, [], settings)


class TestResolveLink:

    def test_links(self):
        assert resolve_link("https://example.com/x") == "https://example.com/x"
        assert resolve_link("/contact", "https://site.test/") == "https://site.test/contact"
        assert resolve_link("#pricing") == "#pricing"
        assert resolve_link("uploads/a.jpg", "https://site.test") == "https://site.test/uploads/a.jpg"
        assert resolve_link("data:text/html;base64,xx") == ""
        assert resolve_link(None) == ""


class TestInformationalPages:

    def test_not_found(self):
        html = render_not_found(SiteSettings({"site_name": "Acme"}))
        assert "404" in html
        assert "Acme" in html

    def test_maintenance_shows_message_and_eta(self):
        settings = SiteSettings({"maintenance_message": "Upgrading <servers>", "maintenance_eta": "2 hours"})
        html = render_maintenance(settings)
        assert "Upgrading &lt;servers&gt;" in html
        assert "Expected back: 2 hours" in html

    def test_error_page_escapes_query_values(self):
        html = render_error_page("<b>Oops</b>", "<img src=x onerror=alert(1)>")
        assert "<img src=x" not in html
        assert "&lt;b&gt;Oops&lt;/b&gt;" in html

    def test_error_page_defaults(self):
        html = render_error_page("", "")
        assert "Database Connection Error" in html

    def test_install_check(self):
        assert "Installation Directory Found" in render_install_check("Acme")
