"""Portfolio site - Backend API.

A JSON REST API behind a personal portfolio single-page app:
- Auth: signup/signin with JWT (httpOnly cookie or Bearer header), admin role gate.
- Contact form submissions with admin triage.
- Education and project showcase records (public reads, admin writes).

See README for setup and usage.
"""

__all__ = ["__version__"]

__version__ = "1.0.0"
