"""Calendar processing: normalization, recurrence, windowing, formatting."""
