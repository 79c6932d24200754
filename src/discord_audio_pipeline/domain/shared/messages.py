"""Centralized message constants for error messages, log output, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Pipeline Errors
    FETCHER_STDOUT_NOT_PIPED = "Fetcher does not expose a piped stdout"
    TRANSCODER_STDIN_NOT_PIPED = "Transcoder does not expose a piped stdin"
    TRANSCODER_STDOUT_NOT_PIPED = "Transcoder does not expose a piped stdout"
    EMPTY_COMMAND = "Command executable cannot be empty"

    # Settings Errors
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"
    EMPTY_EXECUTABLE_PATH = "Executable path cannot be empty"


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Process Lifecycle
    PROCESS_SPAWNED = "Spawned %s (pid=%s): %s"
    PROCESS_SPAWN_FAILED = "Failed to spawn %s '%s': %r"
    PROCESS_EXITED = "%s (pid=%s) exited with code %s"
    PROCESS_KILLED = "Sent signal %s to %s (pid=%s)"
    PROCESS_KILL_FAILED = "Ignoring failure to signal %s (pid=%s): %r"
    PROCESS_EXIT_CALLBACK_ERROR = "Exit observer for %s (pid=%s) raised"
    PROCESS_WAIT_TIMEOUT = "%s (pid=%s) not reaped within %.1fs"

    # Supervisor
    SUPERVISOR_LINKED = "Linked fetcher (pid=%s) to transcoder (pid=%s)"
    SUPERVISOR_FORWARD_DONE = "Forwarded %s bytes from fetcher to transcoder"
    SUPERVISOR_FORWARD_BROKEN = "Transcoder input closed while forwarding: %r"
    SUPERVISOR_FORWARD_FAILED = "Forwarding from fetcher to transcoder failed: %r"
    SUPERVISOR_ABNORMAL_EXIT = "Pipeline failed: %s exited with code %s, tearing down"
    SUPERVISOR_ORPHANED_FETCHER = "Transcoder stopped reading before fetcher ended (pid=%s), stopping fetcher"
    SUPERVISOR_COMPLETED = "Pipeline completed: fetcher and transcoder exited cleanly"
    SUPERVISOR_STOPPING = "Stopping pipeline (fetcher pid=%s, transcoder pid=%s)"
    SUPERVISOR_TORN_DOWN = "Pipeline torn down (fetcher exit=%s, transcoder exit=%s)"
    SUPERVISOR_BUILD_ABORTED = "Pipeline build aborted at %s stage: %s"

    # Resource Pipeline
    PIPELINE_OPENING = "Opening pipeline for %s"
    PIPELINE_OPENED = "Pipeline streaming for %s"
    PIPELINE_OPEN_FAILED = "Failed to open pipeline for %s: %s"
    PIPELINE_CLOSED = "Pipeline closed for %s (%s bytes read)"

    # Track
    TRACK_STARTED = "Started track '%s' (%s)"
    TRACK_STOPPED = "Stopped track '%s'"
    TRACK_DETACHED_FINISHED = "Detached finished pipeline of '%s' (state=%s)"

    # Playback Sink
    PLAYBACK_STARTED = "Started playing '%s' in guild %s"
    PLAYBACK_STOPPED = "Stopped playback in guild %s"
    PLAYBACK_PAUSED = "Paused playback in guild %s"
    PLAYBACK_RESUMED = "Resumed playback in guild %s"
    PLAYBACK_ERROR = "Playback error in guild %s: %s"
    PLAYBACK_FAILED_START = "Failed to start playback of '%s': %s"
    PLAYBACK_FAILED_STOP = "Failed to stop playback: %s"
    PLAYBACK_FAILED_PAUSE = "Failed to pause: %s"
    PLAYBACK_FAILED_RESUME = "Failed to resume: %s"
    PLAYBACK_FAILED_VOLUME = "Failed to set volume: %s"
    PLAYBACK_PIPELINE_FAILED = "Pipeline for '%s' (%s) failed in guild %s: %s"
    PLAYBACK_READ_TIMEOUT = "Timed out reading audio frame for '%s'"
    PLAYBACK_CLEANUP_ERROR = "Error closing pipeline during cleanup: %r"
    PLAYBACK_RESOURCES_CLEANED = "Cleaned up pipelines for %s guilds"
    PLAYBACK_DISCORD_CLIENT_ERROR = "Discord client error: %s"

    # Cache Operations
    CACHE_HIT_URL = "Cache hit for URL: %s"
    CACHE_EXPIRED_CLEANED = "Cleaned %d expired cache entries"
    CACHE_OLDEST_EVICTED = "Evicted %d oldest cache entries"

    # Resolver
    YTDLP_FAILED_EXTRACT_INFO = "Failed to extract info from %s"
    YTDLP_FAILED_SEARCH = "Failed to search for %r"
    YTDLP_NO_CANONICAL_URL = "No canonical URL for %s, falling back to the query link"
    YTDLP_RESOLVED = "Resolved %r to '%s' (%s)"

    # CLI
    CLI_STREAMING = "Streaming '%s' to %s"
    CLI_INTERRUPTED = "Interrupted, stopping track"
    CLI_STREAM_FINISHED = "Finished streaming '%s' (%s bytes)"
    CLI_FATAL_ERROR = "Fatal error: %s"

    # Logging
    LOGGING_CONFIG_FALLBACK = "Could not load %s, falling back to basic config"


class UserMessages:
    """User-facing messages reported by playback consumers."""

    STARTED_PLAYING = "🎶 Started playing: **{title}** {url}"
    PLAYBACK_FAILED = "❌ Could not play **{title}** ({url}), skipping."
    NO_RESULTS = "❌ No search results found for {query}"
    INVALID_LINK = "❌ Could not resolve link {url}"
    ALREADY_PLAYING = "⚠️ **{title}** is already playing."
