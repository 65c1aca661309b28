"""WebDriver creation."""

import shutil
import subprocess
from typing import Optional

from selenium import webdriver
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service as ChromeService

import logging
logger = logging.getLogger(__name__)

from ..config.paths import chromedriver_log_path

WINDOW_SIZE = (1920, 1080)


def build_chrome_options(config: dict) -> Options:
    options = Options()
    headless = bool(config.get("headless", True))
    chrome_path = config.get("chrome_path")
    if chrome_path:
        options.binary_location = chrome_path

    if headless:
        options.add_argument("--headless=new")
        options.add_argument("--disable-gpu")
    options.add_argument("--no-sandbox")
    options.add_argument("--disable-dev-shm-usage")

    # Make the automated browser look like a regular one
    options.add_argument("--disable-blink-features=AutomationControlled")
    options.add_experimental_option("excludeSwitches", ["enable-automation"])
    options.add_experimental_option("prefs", {
        "credentials_enable_service": False,
        "profile.password_manager_enabled": False,
    })
    options.add_argument("--disable-infobars")
    options.add_argument("--disable-extensions")
    options.add_argument("--disable-default-apps")
    options.add_argument("--window-size=%d,%d" % WINDOW_SIZE)

    # Our own DevTools websocket connects next to chromedriver's
    options.add_argument("--remote-allow-origins=*")
    return options


def create_webdriver(config: dict) -> webdriver.Chrome:
    options = build_chrome_options(config)
    log_file = chromedriver_log_path(config)
    service = ChromeService(log_output=log_file) if log_file else ChromeService()
    logger.info(f"Starting Chrome (headless: {bool(config.get('headless', True))})")
    return webdriver.Chrome(service=service, options=options)


def get_chromedriver_capability_version(driver: Optional[webdriver.Chrome] = None) -> Optional[str]:
    """
    Best effort Chromedriver version string.
    - If a driver is provided, prefer driver.capabilities['chrome']['chromedriverVersion'].
    - Else, fall back to `chromedriver --version` if available in PATH.
    """
    try:
        if driver:
            chrome = driver.capabilities.get("chrome") or {}
            v = chrome.get("chromedriverVersion") or driver.capabilities.get("chromedriverVersion")
            if isinstance(v, str) and v:
                # Typically like "114.0.5735.90 (some hash)"
                return v.split(" ")[0]
        path = shutil.which("chromedriver")
        if path:
            return subprocess.check_output([path, "--version"], stderr=subprocess.STDOUT).decode().strip()
    except Exception as e:
        logger.debug(f"Could not determine chromedriver version: {e}")
    return None


__all__ = ["build_chrome_options", "create_webdriver", "get_chromedriver_capability_version"]
