"""Public booking request gate: anti-spam, availability and reservation lifecycle."""
