from app.functions.handlers import (  # noqa: F401
    bids_handler,
    contractors_handler,
    projects_handler,
    users_handler,
)
