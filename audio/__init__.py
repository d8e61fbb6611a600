# Microphone capture and playback backed by sounddevice (PortAudio).
