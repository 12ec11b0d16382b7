"""Frame-driven helpers: a tick scheduler, a closed-set state container, and a shared variable store."""
