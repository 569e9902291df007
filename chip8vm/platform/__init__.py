"""pygame platform layer: window, input and audio."""
