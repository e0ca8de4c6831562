"""Live collection synchronization for hosted document stores."""
