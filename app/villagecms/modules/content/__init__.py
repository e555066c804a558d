"""
Content module (admin + public reads).

Articles, news items and pages share one set of services keyed by ContentKind:
- village-scoped list/create/edit/delete for admins
- published-only reads for the public site
"""
