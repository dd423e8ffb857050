"""AI engine backends. The engine is an external collaborator: text in, text out."""
