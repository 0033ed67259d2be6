"""Video interview client: timed, camera-recorded answers uploaded to a Supabase backend."""

__version__ = "0.1.0"
