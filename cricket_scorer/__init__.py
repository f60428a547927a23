"""
Cricket Live Scoring Engine

Ball-by-ball scoring rules for limited-overs cricket matches: legal-ball
counting, strike rotation, bowler eligibility, wicket bookkeeping, innings
transitions and result computation, with scorecard projections and
snapshot persistence for the live match page.
"""

__version__ = "0.1.0"
