"""
Pre-generate the fixed-phrase clips using edge-tts.

Usage:
    pip install edge-tts
    python -m shelfscan.scripts.gen_tts

Output:
    shelfscan/adapters/tts/assets/default/*.mp3
    shelfscan/adapters/tts/assets/male/*.mp3

Select a set at runtime with TTS_VOICE=default|male.
"""

import asyncio
import os
import edge_tts
from shelfscan.adapters.tts.lines import LINE_CLIP

ASSETS_DIR = os.path.join(os.path.dirname(__file__), "..", "adapters", "tts", "assets")

VOICE_MAP = {
    "default": "en-US-AriaNeural",
    "male": "en-US-GuyNeural",
}


async def generate_line(text: str, fname: str, voice_set: str, voice: str):
    out_dir = os.path.join(ASSETS_DIR, voice_set)
    os.makedirs(out_dir, exist_ok=True)
    out_path = os.path.join(out_dir, fname)
    communicate = edge_tts.Communicate(text, voice)
    await communicate.save(out_path)
    print(f"  [{voice_set}] {text!r} -> {fname}")


async def main():
    print("Generating voice clips...")
    tasks = []
    for voice_set, voice in VOICE_MAP.items():
        for text, fname in LINE_CLIP.items():
            tasks.append(generate_line(text, fname, voice_set, voice))
    await asyncio.gather(*tasks)
    print("Done. Files saved to adapters/tts/assets/")


if __name__ == "__main__":
    asyncio.run(main())
