"""Baseline scripts registered on every document of a CDP-enabled browser.

They smooth over the differences between an automated headless Chrome and a
regular one (navigator.webdriver, window.chrome, plugins, permissions,
window dimensions). Every script must be safe to run more than once.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class BaselineScript:
    name: str
    source: str


CORE_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {
  get: () => undefined,
  configurable: true
});

delete window.__puppeteer_utility_world__;
delete window.__playwright_utility_world__;

if (window.chrome) {
  const originalQuery = window.navigator.permissions.query;
  window.navigator.permissions.query = (parameters) => (
    parameters.name === 'notifications' ?
      Promise.resolve({ state: window.Notification.permission }) :
      originalQuery(parameters)
  );
}
"""

CHROME_SCRIPT = """
if (window.chrome) {
  if (window.chrome.runtime) {
    delete window.chrome.runtime.id;
  }
} else {
  window.chrome = {
    runtime: {},
    app: {
      isInstalled: false,
      InstallState: { DISABLED: 'disabled', INSTALLED: 'installed', NOT_INSTALLED: 'not_installed' },
      RunningState: { CANNOT_RUN: 'cannot_run', READY_TO_RUN: 'ready_to_run', RUNNING: 'running' }
    },
    csi: () => {},
    loadTimes: () => ({
      requestTime: Date.now() / 1000,
      startLoadTime: Date.now() / 1000,
      commitLoadTime: Date.now() / 1000,
      finishDocumentLoadTime: Date.now() / 1000,
      finishLoadTime: Date.now() / 1000,
      firstPaintTime: Date.now() / 1000,
      firstPaintAfterLoadTime: 0,
      navigationType: 'Other',
      wasFetchedViaSpdy: false,
      wasNpnNegotiated: false,
      npnNegotiatedProtocol: '',
      wasAlternateProtocolAvailable: false,
      connectionInfo: 'http/1.1'
    })
  };
}
"""

_PDF_VIEWERS = (
    "PDF Viewer",
    "Chrome PDF Viewer",
    "Chromium PDF Viewer",
    "Microsoft Edge PDF Viewer",
    "WebKit built-in PDF",
)

_PLUGIN_TEMPLATE = """{
      name: '%s',
      description: 'Portable Document Format',
      filename: 'internal-pdf-viewer',
      length: 2,
      item: (i) => ({
        type: i === 0 ? 'application/pdf' : 'text/pdf',
        suffixes: 'pdf',
        description: 'Portable Document Format'
      }),
      namedItem: () => null
    }"""

PLUGINS_SCRIPT = """
Object.defineProperty(navigator, 'plugins', {
  get: () => {
    const plugins = [
    %s
    ];
    plugins.item = (i) => plugins[i] || null;
    plugins.namedItem = () => null;
    plugins.refresh = () => {};
    return plugins;
  },
  configurable: true
});
""" % ",\n    ".join(_PLUGIN_TEMPLATE % name for name in _PDF_VIEWERS)

PERMISSIONS_SCRIPT = """
if (navigator.permissions && navigator.permissions.query) {
  const originalQuery = navigator.permissions.query.bind(navigator.permissions);
  navigator.permissions.query = (params) => {
    if (params.name === 'notifications') {
      return Promise.resolve({ state: Notification.permission, onchange: null });
    }
    return originalQuery(params);
  };
}
"""

DIMENSIONS_SCRIPT = """
if (window.outerWidth === 0 && window.outerHeight === 0) {
  Object.defineProperty(window, 'outerWidth', {
    get: () => window.innerWidth,
    configurable: true
  });
  Object.defineProperty(window, 'outerHeight', {
    get: () => window.innerHeight + 74,
    configurable: true
  });
}

if (screen.width === 0 || screen.height === 0) {
  Object.defineProperty(screen, 'width', { get: () => 1920, configurable: true });
  Object.defineProperty(screen, 'height', { get: () => 1080, configurable: true });
}
"""

BASELINE_SCRIPTS = (
    BaselineScript("core", CORE_SCRIPT),
    BaselineScript("chrome", CHROME_SCRIPT),
    BaselineScript("plugins", PLUGINS_SCRIPT),
    BaselineScript("permissions", PERMISSIONS_SCRIPT),
    BaselineScript("dimensions", DIMENSIONS_SCRIPT),
)


__all__ = ["BaselineScript", "BASELINE_SCRIPTS"]
