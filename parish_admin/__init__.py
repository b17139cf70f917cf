"""Parish administration client: families, events, registrations and rosters."""
