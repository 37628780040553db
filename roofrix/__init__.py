"""
Backend package for the roof report ordering portal.

Customers order measurement reports for a property, admins price and route
the work, and designers deliver the files. The package exposes a FastAPI
application over pluggable database, object storage and event queue
backends, plus a worker that fans order events out as notifications.
"""
