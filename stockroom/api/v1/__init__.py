"""Version 1 of the HTTP API: authentication and the resource routers."""
