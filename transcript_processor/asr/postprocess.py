"""ASR post-processing: speaker-labelled, timestamped transcript text.

Converts a Transcript into human-readable text with [HH:MM:SS] markers at
each utterance and speaker labels at turn boundaries.
"""

from transcript_processor.asr.interface import Transcript


def format_timestamp(seconds: float) -> str:
    """Format seconds as an [HH:MM:SS] marker."""
    total_seconds = int(seconds)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"[{hours:02d}:{minutes:02d}:{secs:02d}]"


def format_transcript(transcript: Transcript) -> str:
    """Render a Transcript for display or export.

    Utterances become `[HH:MM:SS] Speaker N: text` lines, with an empty line
    between speaker changes. Consecutive utterances by the same speaker drop
    the repeated label. Utterances merged from chunks carry times relative to
    their chunk and are rendered without the marker. Transcripts without
    utterances render as their plain text.

    Args:
        transcript: Merged transcript.

    Returns:
        Formatted string. Empty string for empty transcripts.
    """
    if not transcript.utterances:
        return transcript.text.strip()

    lines: list[str] = []
    prev_speaker: str | None = None

    for utterance in transcript.utterances:
        text = utterance.text.strip()
        if not text:
            continue

        # Chunked utterance times restart at zero in every chunk.
        marker = (
            format_timestamp(utterance.start_time) + " "
            if utterance.chunk_index is None
            else ""
        )
        if utterance.speaker_label != prev_speaker:
            if prev_speaker is not None:
                lines.append("")
            lines.append(f"{marker}{utterance.speaker_label}: {text}")
            prev_speaker = utterance.speaker_label
        else:
            lines.append(f"{marker}{text}")

    return "\n".join(lines)
