import logging

log = logging.getLogger("verification")
