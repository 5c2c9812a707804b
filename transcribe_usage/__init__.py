"""Usage quotas, monthly resets and account deletion for the transcription backend."""

__version__ = "0.1.0"
