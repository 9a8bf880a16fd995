"""Overlay page served at ``/``.

Presentation only: the page polls ``/state`` and applies the same
staleness rule as :func:`pynowplaying.reader.build_view`.
"""

from __future__ import annotations

from string import Template

_OVERLAY_TEMPLATE = Template(
    """<!doctype html>
<html>
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width,height=device-height,initial-scale=1"/>
  <title>Now Playing</title>
  <style>
    html, body { margin:0; width:100%; height:100%; background:#000; color:#fff;
      font-family: system-ui, -apple-system, Segoe UI, Roboto, Arial; overflow:hidden; }
    .bg { position:absolute; inset:-30px; background-size:cover; background-position:center;
      filter: blur(2px); transform: scale(1.08); opacity:.95; }
    .shade { position:absolute; inset:0; background: radial-gradient(circle at center,
      rgba(0,0,0,.25) 0%, rgba(0,0,0,.65) 62%, rgba(0,0,0,.88) 100%); }
    .center { position:absolute; inset:0; display:flex; flex-direction:column; align-items:center;
      justify-content:center; text-align:center; gap:10px; padding:36px; }
    .title { font-size:28px; font-weight:700; }
    .meta, .time { font-size:18px; opacity:.88; }
    .bar { width:60%; height:6px; background:rgba(255,255,255,.15); border-radius:3px; }
    .fill { height:100%; width:0; background:#fff; border-radius:3px; }
    .badge { position:absolute; bottom:14px; left:0; right:0; text-align:center; font-size:14px; opacity:.65; }
  </style>
</head>
<body>
  <div class="bg" id="bg"></div>
  <div class="shade"></div>
  <div class="center">
    <div class="title" id="title">Nothing playing</div>
    <div class="meta" id="channel"></div>
    <div class="time" id="time"></div>
    <div class="bar"><div class="fill" id="fill"></div></div>
  </div>
  <div class="badge" id="badge"></div>
  <script>
    const POLL_MS = $poll_ms;
    const STALE_MS = $stale_ms;
    const el = (id) => document.getElementById(id);

    function fmt(sec) {
      sec = Math.max(0, Math.floor(sec || 0));
      return Math.floor(sec / 60) + ":" + String(sec % 60).padStart(2, "0");
    }

    async function tick() {
      try {
        const res = await fetch("/state", { cache: "no-store" });
        const data = await res.json();
        const stale = Date.now() - (data.updatedAt || 0) > STALE_MS;
        const playing = !!data.playing && !stale;
        const dur = Number(data.durationSeconds || 0);
        const pos = Number(data.positionSeconds || 0);
        const thumb = data.thumbnailUrl || "";

        el("bg").style.backgroundImage = /^https?:/.test(thumb) ? "url(" + JSON.stringify(thumb) + ")" : "none";
        el("title").textContent = data.title || "Nothing playing";
        el("channel").textContent = data.channel || "";
        el("time").textContent = dur > 0 ? fmt(pos) + " / " + fmt(dur) : "";
        el("fill").style.width = (dur > 0 ? Math.min(1, Math.max(0, pos / dur)) * 100 : 0) + "%";
        el("fill").style.opacity = playing ? "0.95" : "0.55";
        el("badge").textContent = stale ? "Waiting for video..." : (playing ? "Playing" : "Paused");
      } catch (e) {
        el("title").textContent = "Server running, no data";
        el("channel").textContent = "";
        el("time").textContent = "";
        el("fill").style.width = "0";
        el("badge").textContent = "Waiting for video...";
        el("bg").style.backgroundImage = "none";
      }
    }

    setInterval(tick, POLL_MS);
    tick();
  </script>
</body>
</html>
"""
)


def render_overlay_html(*, poll_interval: float, stale_after: float) -> str:
    return _OVERLAY_TEMPLATE.substitute(
        poll_ms=int(poll_interval * 1000),
        stale_ms=int(stale_after * 1000),
    )
