"""Render plan invariant checks.

``validate_render_plan`` returns a list of human-readable problems; an
empty list means the plan is safe to hand to a renderer.
"""

from __future__ import annotations

from reelforge.common.models import LayerType, RenderPlan, TimelineEntry

VOLUME_TOLERANCE = 1e-9


def check_scene_ranges(plan: RenderPlan) -> list[str]:
    issues = []
    ranges = plan.scene_ranges
    windows = {(w.from_scene_id, w.to_scene_id): w for w in plan.transitions}

    for r in ranges:
        if r.start_frame > r.end_frame:
            issues.append(f"scene {r.scene_id}: start {r.start_frame} > end {r.end_frame}")

    for current, nxt in zip(ranges, ranges[1:]):
        overlap = current.end_frame - nxt.start_frame
        if overlap < 0:
            issues.append(f"gap between {current.scene_id} and {nxt.scene_id}")
            continue
        window = windows.get((current.scene_id, nxt.scene_id))
        expected = window.overlap_frames if window else 0
        if overlap != expected:
            issues.append(
                f"{current.scene_id}/{nxt.scene_id} overlap {overlap} "
                f"outside transition window ({expected})"
            )
        if 2 * overlap > min(current.duration_frames, nxt.duration_frames):
            issues.append(
                f"{current.scene_id}/{nxt.scene_id} overlap {overlap} exceeds half the shorter scene"
            )
    return issues


def check_total_frames(plan: RenderPlan) -> list[str]:
    scene_frames = sum(r.duration_frames for r in plan.scene_ranges)
    overlap_frames = sum(w.overlap_frames for w in plan.transitions)
    expected = scene_frames - overlap_frames + plan.metadata.end_card_frames
    if plan.metadata.total_frames != expected:
        return [f"total_frames {plan.metadata.total_frames} != expected {expected}"]
    return []


def check_entries(plan: RenderPlan) -> list[str]:
    issues = []
    total = plan.metadata.total_frames
    for entry in plan.entries:
        if entry.start_frame > entry.end_frame:
            issues.append(f"entry {entry.entry_id}: start after end")
        if entry.end_frame > total:
            issues.append(f"entry {entry.entry_id}: ends at {entry.end_frame} past {total}")

    keys = [e.sort_key() for e in plan.entries]
    if keys != sorted(keys):
        issues.append("entries are not in timeline order")

    ids = [e.entry_id for e in plan.entries]
    if len(ids) != len(set(ids)):
        issues.append("duplicate entry ids")
    return issues


def check_music_ducking(plan: RenderPlan) -> list[str]:
    """Music stays within [0, base], under base while voiced, back at base after release."""
    music = [
        e for e in plan.entries_on(LayerType.AUDIO) if e.params.get("track") == "music"
    ]
    voices = [
        e for e in plan.entries_on(LayerType.AUDIO) if e.params.get("track") == "voice"
    ]
    issues: list[str] = []

    for entry in music:
        envelope = plan.envelope(entry.params.get("envelope_id", "music"))
        if envelope is None:
            issues.append(f"music entry {entry.entry_id} has no envelope")
            continue
        base = entry.params["base_volume"]
        ramp_in = entry.params.get("ramp_in_frames", 0)
        ramp_out = entry.params.get("ramp_out_frames", 0)

        if any(k.volume > base + VOLUME_TOLERANCE for k in envelope.keyframes):
            issues.append("music envelope exceeds base volume")

        for voice in voices:
            if voice.start_frame == voice.end_frame:
                continue
            sampled = [voice.start_frame, voice.end_frame - 1] + [
                k.frame
                for k in envelope.keyframes
                if voice.start_frame <= k.frame < voice.end_frame
            ]
            if any(envelope.volume_at(f) >= base for f in sampled):
                issues.append(f"music not ducked under {voice.entry_id}")

            release_done = voice.end_frame + ramp_out
            if release_done < plan.metadata.total_frames and not _in_duck_zone(
                release_done, voices, ramp_in, ramp_out
            ):
                if abs(envelope.volume_at(release_done) - base) > VOLUME_TOLERANCE:
                    issues.append(f"music not restored after {voice.entry_id}")
    return issues


def _in_duck_zone(
    frame: int, voices: list[TimelineEntry], ramp_in: int, ramp_out: int
) -> bool:
    return any(
        v.start_frame - ramp_in <= frame < v.end_frame + ramp_out for v in voices
    )


def validate_render_plan(plan: RenderPlan) -> list[str]:
    """Run every check and collect the problems."""
    return (
        check_scene_ranges(plan)
        + check_total_frames(plan)
        + check_entries(plan)
        + check_music_ducking(plan)
    )
