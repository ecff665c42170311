"""Stats retrieval and parsing for the statwatch agent."""
