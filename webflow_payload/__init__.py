"""
Webflow to Payload Migration Toolkit

Copies CMS content from a Webflow site (REST API v2) into a Payload CMS
instance, reconciling against records that already exist in the target.

Supports:
- Contributors, projects, FAQs, posts, project updates and matching donors
- Slug/name reconciliation so repeated runs refresh instead of duplicating
- Cross-collection reference resolution through a run-scoped identifier map
- Image migration into the Payload media collection
- Dry runs, JSON run reports and a Webflow/Payload comparison audit
"""

__version__ = "0.1.0"
