"""Business rules independent of any form or API."""
