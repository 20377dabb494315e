"""
Page CMS service package.

Serves published pages through a single front controller that enforces:
- Licensing: signed local key, remote verification and a suspended marker
- Maintenance mode and the install directory check
- A file-based full-page cache segmented by viewer role

Structure:
- app.main: FastAPI app, front controller and admin endpoints.
- app.caching: Page cache.
- app.licensing: License client, local key codec and the request gate.
- app.settings: Site settings providers.
- app.pages: Page models, repository and HTML rendering.
- app.persistence: PostgreSQL pool.
- app.theme: Color and URL validators for theme settings.
"""
