#petaboo/api/browser_log.py
import logging

from fastapi import APIRouter, status

from petaboo.schemas.browser_log import BrowserLogEntry

router = APIRouter(tags=["Logs"])

browser_logger = logging.getLogger("Petaboo.Browser")

LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "log": logging.INFO,
    "debug": logging.DEBUG,
}

@router.post("/browser-logs", status_code=status.HTTP_204_NO_CONTENT)
def collect_browser_log(entry: BrowserLogEntry):
    """
    Принимает лог консоли браузера и пишет его в серверный лог. Без авторизации.
    """
    level = LEVELS.get(entry.level.lower(), logging.INFO)
    browser_logger.log(level, f"[{entry.timestamp or '-'}] {entry.url or '-'} {entry.message}")
