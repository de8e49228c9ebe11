"""CareTrack API: patient check-ins, caretaker access and health insights."""
