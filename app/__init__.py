# Request orchestration: one utterance -> research -> chat -> speech.
