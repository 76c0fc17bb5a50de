# koovlo/catalog.py
from typing import Dict, List

from flask import Flask

# blueprint name -> family shown in the catalog
FAMILIES = {
    "pdf": "PDF Tools",
    "sign": "PDF Tools",
    "image": "Image Tools",
    "education": "Education Tools",
    "text": "Text & Web Tools",
    "file": "File Tools",
    "document": "Document Tools",
}


def tool_catalog(app: Flask, base_url: str = "") -> List[Dict[str, str]]:
    """Every POST tool endpoint under /tools/, sorted by path."""
    tools = []
    for rule in app.url_map.iter_rules():
        if "POST" not in (rule.methods or ()) or not rule.rule.startswith("/tools/"):
            continue
        blueprint = rule.endpoint.split(".", 1)[0]
        path = rule.rule.rstrip("/") or rule.rule
        tools.append({
            "path": path,
            "family": FAMILIES.get(blueprint, blueprint.title()),
            "endpoint": rule.endpoint,
            "absolute_url": f"{base_url}{path}",
        })
    # sign is registered on "" and "/"
    unique = {t["path"]: t for t in tools}
    return sorted(unique.values(), key=lambda t: t["path"])
