# webhook_server.py

import asyncio
import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Optional

from flask import Flask, jsonify, request

from .config import configure_logging, load_settings
from .errors import LookupFailure, StructureValidationError
from .models import Order
from .order_processor import ReconciliationScanner
from .order_sync import OrderSyncService
from .sheets_service import GoogleSheetsStore, analyze_customer_orders
from .shopify_service import create_order_store
from .watcher import SheetsWatcher, start_in_background

logger = logging.getLogger(__name__)


@dataclass
class Services:
    sheets: object
    orders: object
    sync: OrderSyncService
    scanner: ReconciliationScanner
    watcher: SheetsWatcher
    webhook_secret: Optional[str] = None


def build_services(settings, sheets=None, orders=None) -> Services:
    sheets = sheets or GoogleSheetsStore.from_settings(settings)
    orders = orders or create_order_store(settings)
    scanner = ReconciliationScanner(sheets, orders, order_prefix=settings.order_prefix)
    return Services(
        sheets=sheets,
        orders=orders,
        sync=OrderSyncService(sheets, orders),
        scanner=scanner,
        watcher=SheetsWatcher(scanner, interval=settings.poll_interval),
        webhook_secret=settings.webhook_secret,
    )


def verify_shopify_webhook(body: bytes, hmac_header: Optional[str], secret: Optional[str]) -> bool:
    """Check X-Shopify-Hmac-Sha256 against the raw body. No secret configured means no check."""
    if not secret:
        return True
    if not hmac_header:
        logger.warning("Webhook without HMAC header")
        return False
    computed = base64.b64encode(
        hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    ).decode("utf-8")
    if not hmac.compare_digest(computed, hmac_header):
        logger.warning("Webhook with invalid HMAC signature")
        return False
    return True


def error(message, code=500):
    return jsonify({"status": "error", "message": message}), code


def create_app(services: Optional[Services] = None) -> Flask:
    app = Flask(__name__)
    if services is None:
        services = build_services(load_settings())
    app.extensions["order_sheet_sync"] = services

    @app.route("/", methods=["GET"])
    def index():
        return jsonify({
            "message": "Shopify Google Sheets Sync API",
            "endpoints": {
                "testConnection": "GET /api/test-connection",
                "getOrders": "GET /api/orders?limit=10&status=any",
                "syncOrders": "POST /api/sync-orders",
                "analyzeCustomer": "GET /api/analyze-customer/<name>",
                "scan": "POST /api/scan",
                "watcher": "POST /api/watcher/start | POST /api/watcher/stop | GET /api/watcher/status",
                "webhooks": "POST /api/webhook/order-created | order-updated | order-fulfilled",
            },
        })

    @app.route("/api/test-connection", methods=["GET"])
    def test_connection():
        return jsonify({
            "status": "success",
            "shopify": services.orders.test_connection(),
            "googleSheets": services.sheets.test_connection(),
        })

    @app.route("/api/orders", methods=["GET"])
    def get_orders():
        try:
            limit = int(request.args.get("limit", 10))
        except ValueError:
            return error("limit must be an integer", 400)
        status = request.args.get("status", "any")
        try:
            orders = services.orders.get_orders(limit, status)
        except Exception as e:
            return error(str(e))
        return jsonify({"status": "success", "data": orders})

    @app.route("/api/analyze-customer/<path:customer_name>", methods=["GET"])
    def analyze_customer(customer_name):
        try:
            rows = services.sheets.read_all_rows()
        except Exception as e:
            return error(str(e))
        return jsonify({"status": "success", "data": analyze_customer_orders(rows, customer_name)})

    @app.route("/api/sync-orders", methods=["POST"])
    def sync_orders():
        payload = request.get_json(silent=True) or {}
        order_ids = payload.get("orderIds") or []
        try:
            if order_ids:
                report = asyncio.run(services.sync.sync_specific_orders(order_ids))
            else:
                report = asyncio.run(services.sync.sync_recent_orders(int(payload.get("limit", 10))))
        except StructureValidationError as e:
            return error(str(e), 400)
        except LookupFailure as e:
            return error(str(e), 404)
        except Exception as e:
            return error(str(e))
        return jsonify({
            "status": "success",
            "message": f"Synced {report.success_count} order(s)",
            "data": report.to_dict(),
            "statistics": report.statistics(),
        }), 200

    @app.route("/api/scan", methods=["POST"])
    def scan():
        if services.watcher.pass_running:
            return error("A reconciliation pass is already running", 409)
        report = asyncio.run(services.watcher.run_pass())
        if report is None:
            return error(services.watcher.last_error or "scan failed")
        return jsonify({"status": "success", "data": report.to_dict()}), 200

    @app.route("/api/watcher/start", methods=["POST"])
    def watcher_start():
        start_in_background(services.watcher)
        return jsonify({"status": "success", "data": services.watcher.status()})

    @app.route("/api/watcher/stop", methods=["POST"])
    def watcher_stop():
        services.watcher.stop()
        return jsonify({"status": "success", "data": services.watcher.status()})

    @app.route("/api/watcher/status", methods=["GET"])
    def watcher_status():
        return jsonify({"status": "success", "data": services.watcher.status()})

    def handle_order_webhook(topic):
        body = request.get_data()
        if not verify_shopify_webhook(body, request.headers.get("X-Shopify-Hmac-Sha256"), services.webhook_secret):
            return error("Invalid webhook signature", 401)
        try:
            order = Order.from_shopify(json.loads(body))
        except (json.JSONDecodeError, UnicodeDecodeError, AttributeError):
            return error("Invalid JSON payload", 400)

        logger.info("Webhook %s: order %s", topic, order.identifier)
        try:
            report = asyncio.run(services.sync.sync_orders([order]))
        except Exception as e:
            logger.error("Webhook %s failed for %s: %s", topic, order.identifier, e)
            return error(str(e))
        if report.success_count == 0:
            return error("Sync failed")
        return "OK", 200

    @app.route("/api/webhook/order-created", methods=["POST"])
    def order_created():
        return handle_order_webhook("orders/create")

    @app.route("/api/webhook/order-updated", methods=["POST"])
    def order_updated():
        return handle_order_webhook("orders/updated")

    @app.route("/api/webhook/order-fulfilled", methods=["POST"])
    def order_fulfilled():
        return handle_order_webhook("orders/fulfilled")

    return app


def run_options(settings, host="0.0.0.0") -> dict:
    """Arguments for `app.run`; the Werkzeug debugger is on only at DEBUG level."""
    return {"host": host, "port": settings.port, "debug": settings.log_level == "DEBUG"}


if __name__ == "__main__":
    settings = load_settings()
    configure_logging(settings.log_level)
    create_app(build_services(settings)).run(**run_options(settings))
