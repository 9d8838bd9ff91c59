"""Feature modules: site auditing and brand reporting."""
