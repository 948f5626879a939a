"""
Мониторинг сервиса заказов.

Проверки:
- api:          GET /health отвечает {"status": "ok"}
- dashboard:    GET /stats отдаёт конверт с success=true
- database:     пул соединений сервиса отвечает на SELECT 1 (PostgreSQL или SQLite)
- stale_orders: нет заказов, застрявших в pending дольше PENDING_ALERT_MINUTES
"""
import os
import time
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Tuple

import requests
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

import models
from database import Database

load_dotenv()

logger = logging.getLogger("OrderMonitor")

API_URL = os.getenv("API_URL", "http://backend-api:8000")
CHECK_INTERVAL = int(os.getenv("CHECK_INTERVAL", "60"))
PENDING_ALERT_MINUTES = int(os.getenv("PENDING_ALERT_MINUTES", "30"))


class OrderMonitor:
    def __init__(self, database: Database, api_url: str = API_URL, http=None,
                 pending_alert_minutes: int = PENDING_ALERT_MINUTES, timeout: float = 5.0):
        self.database = database
        self.api_url = api_url.rstrip("/")
        self.http = http or requests.Session()
        self.pending_alert_minutes = pending_alert_minutes
        self.timeout = timeout

    def _get_json(self, path: str):
        resp = self.http.get(f"{self.api_url}{path}", timeout=self.timeout)
        if resp.status_code >= 400:
            raise ValueError(f"HTTP {resp.status_code}")
        return resp.json()

    def check_api(self) -> Tuple[bool, str]:
        try:
            body = self._get_json("/health")
        except (requests.RequestException, ValueError) as e:
            return False, f"api: ERROR ({e})"
        if body.get("status") != "ok":
            return False, f"api: FAIL ({body.get('message', 'unexpected status')})"
        return True, "api: OK"

    def check_dashboard(self) -> Tuple[bool, str]:
        try:
            body = self._get_json("/stats")
        except (requests.RequestException, ValueError) as e:
            return False, f"dashboard: ERROR ({e})"
        if not body.get("success"):
            return False, f"dashboard: FAIL ({body.get('error', 'no data')})"
        summary = body["data"]["summary"]
        return True, f"dashboard: OK ({summary['totalOrders']} orders, revenue {summary['totalRevenue']})"

    def check_database(self) -> Tuple[bool, str]:
        if self.database.ping():
            return True, "database: OK"
        return False, "database: ERROR (SELECT 1 failed)"

    def check_stale_orders(self) -> Tuple[bool, str]:
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=self.pending_alert_minutes)
        db = self.database.SessionLocal()
        try:
            stale = (
                db.query(models.Order.id)
                .filter(models.Order.status == "pending", models.Order.order_date < cutoff)
                .order_by(models.Order.id)
                .all()
            )
        except SQLAlchemyError as e:
            return False, f"stale_orders: ERROR ({e})"
        finally:
            db.close()

        if stale:
            ids = ", ".join(str(order_id) for order_id, in stale)
            return False, (f"stale_orders: {len(stale)} pending longer than "
                           f"{self.pending_alert_minutes} min (orders {ids})")
        return True, "stale_orders: OK"

    def run(self) -> Dict[str, bool]:
        checks = {
            "api": self.check_api,
            "dashboard": self.check_dashboard,
            "database": self.check_database,
            "stale_orders": self.check_stale_orders,
        }

        results: Dict[str, bool] = {}
        for name, check in checks.items():
            ok, message = check()
            results[name] = ok
            if ok:
                logger.info(f"[OK ] {message}")
            else:
                logger.warning(f"[FAIL] {message}")
        return results


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    monitor = OrderMonitor(Database())
    logger.info(f"Order monitor started, checking {API_URL} every {CHECK_INTERVAL} seconds")

    try:
        while True:
            try:
                monitor.run()
            except Exception as e:
                logger.error(f"Error during monitoring: {e}")
            time.sleep(CHECK_INTERVAL)
    finally:
        monitor.database.dispose()
