#!/usr/bin/env python3
"""Convert an .srt subtitle file into compact JSON cues for the player.

Usage:
  python srt_to_json.py --srt out/transcript_jp.srt --out out/transcript_jp.json

Output schema:
  [{"s": 12.345, "e": 14.2, "t": "line1\\nline2"}, ...]
"""
from __future__ import annotations

import re
import sys
import json
import argparse
from pathlib import Path
from typing import List


class SubtitleError(ValueError):
    pass


def parse_ts_to_seconds(ts: str) -> float:
    # "HH:MM:SS,mmm" or "HH:MM:SS.mmm"; unparsable parts count as 0
    parts = [p.strip() for p in re.split(r'[:,.]', ts.strip())]

    def part(i):
        try:
            return int(parts[i])
        except (IndexError, ValueError):
            return 0

    ms = 0
    if len(parts) > 3:
        digits = (parts[3] + '000')[:3]
        ms = int(digits) if digits.isdigit() else 0
    return round(part(0) * 3600 + part(1) * 60 + part(2) + ms / 1000.0, 3)


def parse_srt_to_cues(srt_text: str) -> List[dict]:
    norm = srt_text.replace('\r\n', '\n').replace('\r', '\n')
    cues = []
    for block in norm.split('\n\n'):
        block = block.strip()
        if not block:
            continue
        lines = [line.rstrip() for line in block.split('\n')]
        if len(lines) < 2:
            continue

        # the numeric index line is optional
        time_idx = 1 if '-->' in lines[1] else 0
        time_line = lines[time_idx]
        if '-->' not in time_line:
            continue
        start_ts, _, end_ts = (p.strip() for p in time_line.partition('-->'))
        if not start_ts or not end_ts:
            continue

        text = '\n'.join(line for line in lines[time_idx + 1:] if line).strip()
        if not text:
            continue

        cues.append({'s': parse_ts_to_seconds(start_ts), 'e': parse_ts_to_seconds(end_ts), 't': text})

    cues.sort(key=lambda c: c['s'])
    return cues


def srt_to_json_file(srt_path, json_path) -> List[dict]:
    srt_path = Path(srt_path)
    json_path = Path(json_path)
    try:
        srt = srt_path.read_text(encoding='utf-8-sig')
    except OSError as exc:
        raise SubtitleError(f'Failed reading SRT: {srt_path}') from exc

    cues = parse_srt_to_cues(srt)
    if not cues:
        raise SubtitleError(f'No cues parsed from {srt_path}')

    json_path.parent.mkdir(parents=True, exist_ok=True)
    with open(json_path, 'w', encoding='utf-8') as fh:
        json.dump(cues, fh, ensure_ascii=False, separators=(',', ':'))
    return cues


def main(argv=None):
    parser = argparse.ArgumentParser()
    parser.add_argument('--srt', default='out/transcript.srt')
    parser.add_argument('--out', default='out/transcript.json')
    args = parser.parse_args(argv)
    try:
        cues = srt_to_json_file(args.srt, args.out)
    except SubtitleError as exc:
        print('error:', exc, file=sys.stderr)
        return 1
    print('Wrote', len(cues), 'cues to', args.out)
    return 0


if __name__ == '__main__':
    sys.exit(main())
