"""
Profiles: public-facing team member records, one per User.
The Profile is what the team page shows; the User is what logs in.
"""
