# koovlo/__init__.py
import importlib
import importlib.util
import logging
import pkgutil

from flask import Flask, Response, jsonify

from . import catalog
from .config import Config
from .errors import register_error_handlers
from .logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app(config_object=None, **overrides):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.config.update(overrides)
    app.json.sort_keys = False

    setup_logging(app.config["LOG_LEVEL"], app.config.get("LOG_FILE"))
    register_error_handlers(app)

    # Auto-discover and register all blueprints: koovlo.tools.<family>.routes:bp
    from . import tools
    for _finder, name, _ispkg in pkgutil.iter_modules(tools.__path__, tools.__name__ + "."):
        if importlib.util.find_spec(f"{name}.routes") is None:
            continue  # family without routes.py is fine
        mod = importlib.import_module(f"{name}.routes")
        bp = getattr(mod, "bp", None)
        if bp:
            app.register_blueprint(bp)
            logger.debug("registered blueprint %s", bp.name)

    @app.get("/")
    def home():
        tools_list = catalog.tool_catalog(app)
        return jsonify(name="Koovlo", tools=len(tools_list))

    @app.get("/api/tools")
    def tools_index():
        return jsonify(tools=catalog.tool_catalog(app, app.config["SITE_URL"]))

    # robots.txt
    @app.get("/robots.txt")
    def robots():
        lines = [
            "User-agent: *",
            "Allow: /",
            "Disallow: /api/",
            f"Sitemap: {app.config['SITE_URL']}/sitemap.xml",
        ]
        return Response("\n".join(lines), mimetype="text/plain")

    # sitemap.xml – home plus every tool
    @app.get("/sitemap.xml")
    def sitemap():
        urls = [app.config["SITE_URL"] + "/"]
        urls += [t["absolute_url"] for t in catalog.tool_catalog(app, app.config["SITE_URL"])]
        xml = [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">',
        ]
        xml += [f"<url><loc>{u}</loc></url>" for u in urls]
        xml.append("</urlset>")
        return Response("\n".join(xml), mimetype="application/xml")

    logger.info("Koovlo ready with %d blueprints", len(app.blueprints))
    return app
