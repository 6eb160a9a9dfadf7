"""Domain services and hosted collaborator clients."""
