"""
Reserved words shared by request routing and shortcode validation.

A custom shortcode can never shadow an application route because both the
classifier and the validator read from the same set.
"""

# Application routes and words likely to become routes
RESERVED_IDENTIFIERS = frozenset({
    "login",
    "signup",
    "dashboard",
    "api",
    "assets",
    "favicon",
    "robots",
    "sitemap",
    "admin",
    "help",
    "support",
    "about",
    "terms",
    "privacy",
    "health",
    "docs",
    "redoc",
})

# First path segments that never trigger a store lookup
RESERVED_PATHS = RESERVED_IDENTIFIERS | frozenset({
    "favicon.ico",
    "robots.txt",
    "sitemap.xml",
    "openapi.json",
})

# Subdomain labels used by internal subsystems
RESERVED_PARTITIONS = frozenset({
    "admin",
    "api",
    "www",
    "app",
    "mail",
    "ftp",
    "blog",
    "help",
    "support",
    "status",
})

# Hosts that behave like the root domain during local development
LOCAL_HOSTS = frozenset({"localhost", "127.0.0.1"})
