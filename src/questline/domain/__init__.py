"""Domain models: definitions, player profiles and progress records."""
