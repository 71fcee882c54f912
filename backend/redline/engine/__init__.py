"""Game-state engine: profiles, stores, systems and session orchestration."""
