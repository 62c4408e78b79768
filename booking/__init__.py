"""Booking draft domain: contracts, collaborators, pricing and transitions."""
