"""Chat-command console front end."""
