"""Self-contained HTML dashboard for the pavement condition network.

Generates a single ``pci_dashboard.html`` with:
  - Leaflet map with super-section, 10 m section and distress layers
  - Zoom-tier driven layer visibility using the same thresholds as the core
  - Year selector that swaps datasets while keeping the camera where it was
  - Playback slider driving a tracked marker along the visible path
  - Plotly condition distribution chart for every year
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

try:
    from jinja2 import Template
except ImportError as exc:
    raise ImportError(
        "jinja2 is required for report generation: pip install pci-dashboard[report]"
    ) from exc

try:
    import plotly.graph_objects as go
except ImportError as exc:
    raise ImportError(
        "plotly is required for report generation: pip install pci-dashboard[report]"
    ) from exc

from .association import DistressAssociator
from .condition import CONDITION_BUCKETS, CONDITION_SCALE, TOP_BUCKET, color_for, severity_condition
from .dashboard import Dashboard
from .models import YearDataset
from .tiers import DETAIL_ZOOM, INSPECTION_ZOOM, TierScheme


COLORS = {
    "bg": "#f5f6f8",
    "surface": "#ffffff",
    "border": "rgba(0, 0, 0, 0.12)",
    "text": "#1f2933",
    "text_dim": "#616e7c",
    "primary": "#1976d2",
    "marker_fill": "#ffffff",
    "marker_stroke": "#000000",
}

SUPER_SECTION_WEIGHT = 6
SECTION_WEIGHT = 4
DISTRESS_RADIUS_M = 6
CHART_HEIGHT = 260


def _condition_bins() -> list[tuple[str, str, int, int]]:
    bins: list[tuple[str, str, int, int]] = []
    lower = 0
    for upper, color, label in CONDITION_BUCKETS:
        bins.append((label, color, lower, upper))
        lower = upper + 1
    bins.append((TOP_BUCKET[1], TOP_BUCKET[0], lower, 100))
    return bins


def condition_summary(datasets: dict[int, YearDataset]) -> pd.DataFrame:
    """Count of 10 m sections per condition bucket and year."""
    rows = []
    for year, dataset in sorted(datasets.items()):
        scores = np.array([s.condition for s in dataset.sub_sections], dtype=np.float64)
        rounded = np.floor(scores + 0.5)
        for label, color, low, high in _condition_bins():
            mask = (rounded >= low) & (rounded <= high)
            if high == 100:
                mask |= rounded > 100
            rows.append(
                {
                    "year": year,
                    "bucket": label,
                    "color": color,
                    "sections": int(mask.sum()),
                }
            )
    return pd.DataFrame(rows, columns=["year", "bucket", "color", "sections"])


def year_payload(dataset: YearDataset, associator: DistressAssociator) -> dict[str, Any]:
    associations = associator.associations(dataset, True)
    return {
        "year": dataset.year,
        "superSections": [
            {
                "id": s.id,
                "name": s.name,
                "coordinates": [list(c) for c in s.coordinates],
                "condition": s.condition,
                "color": color_for(s.condition),
                "lengthKm": round(s.total_length_km, 1),
                "traffic": s.traffic_volume,
                "inspected": s.last_inspected.isoformat() if s.last_inspected else None,
            }
            for s in dataset.super_sections
        ],
        "sections": [
            {
                "id": s.id,
                "coordinates": [list(c) for c in s.coordinates],
                "condition": s.condition,
                "color": color_for(s.condition),
            }
            for s in dataset.sub_sections
        ],
        "distress": [
            {
                "id": p.id,
                "position": list(p.position),
                "type": p.distress_type.label,
                "severity": p.severity,
                "size": p.size,
                "fill": color_for(associations[p.id].condition),
                "color": color_for(severity_condition(p.severity)),
            }
            for p in dataset.distress_points
        ],
    }


class DashboardReportBuilder:
    """Render every selectable year of a `Dashboard` into one HTML page."""

    def __init__(self, dashboard: Dashboard, metadata: dict[str, Any] | None = None) -> None:
        self.dashboard = dashboard
        self.metadata = metadata or {}

    def save_report(self, output_path: str | Path) -> Path:
        out = Path(output_path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(self.render(), encoding="utf-8")
        return out

    def render(self) -> str:
        dashboard = self.dashboard
        datasets = {year: dashboard.catalog.get(year) for year in dashboard.catalog.years}
        viewport = dashboard.surface.get_viewport()
        state = dashboard.state
        ctx: dict[str, Any] = {
            "title": self.metadata.get("title", "Pavement Condition Dashboard"),
            "run_id": self.metadata.get("run_id", "pci-dashboard"),
            "generated_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
            "years": list(dashboard.catalog.years),
            "selected_year": state.year,
            "scale": CONDITION_SCALE,
            "chart_json": self._chart_conditions(datasets).to_json(),
            "data_json": json.dumps(
                {
                    str(year): year_payload(dataset, dashboard.associator)
                    for year, dataset in datasets.items()
                }
            ),
            "config_json": json.dumps(
                {
                    "detailZoom": DETAIL_ZOOM,
                    "inspectionZoom": INSPECTION_ZOOM,
                    "twoTier": state.scheme is TierScheme.TWO_TIER,
                    "center": list(viewport.center),
                    "zoom": viewport.zoom,
                    "year": state.year,
                    "followMs": dashboard.follower.duration_ms,
                    "superWeight": SUPER_SECTION_WEIGHT,
                    "sectionWeight": SECTION_WEIGHT,
                    "distressRadius": DISTRESS_RADIUS_M,
                }
            ),
            "colors": COLORS,
        }
        return Template(_TEMPLATE).render(**ctx)

    def _chart_conditions(self, datasets: dict[int, YearDataset]) -> go.Figure:
        summary = condition_summary(datasets)
        fig = go.Figure()
        for label, color, _low, _high in _condition_bins():
            rows = summary[summary["bucket"] == label]
            fig.add_trace(
                go.Bar(
                    x=rows["year"].astype(str),
                    y=rows["sections"],
                    name=label,
                    marker_color=color,
                    hovertemplate=f"<b>{label}</b>: %{{y}} sections<extra></extra>",
                )
            )
        fig.update_layout(
            barmode="stack",
            height=CHART_HEIGHT,
            margin=dict(l=40, r=10, t=30, b=30),
            paper_bgcolor=COLORS["surface"],
            plot_bgcolor=COLORS["surface"],
            font=dict(color=COLORS["text_dim"], size=12),
            title=dict(text="10 m sections by condition", font=dict(size=13)),
            legend=dict(orientation="h", yanchor="bottom", y=-0.35, font=dict(size=10)),
        )
        return fig


_TEMPLATE = r"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>{{ title }}</title>
<link rel="stylesheet" href="https://unpkg.com/leaflet@1.9.4/dist/leaflet.css" crossorigin="">
<style>
*,*::before,*::after{box-sizing:border-box}
body{margin:0;height:100vh;display:flex;flex-direction:column;font-family:system-ui,sans-serif;
  background:{{ colors.bg }};color:{{ colors.text }}}
header{height:52px;display:flex;align-items:center;justify-content:space-between;padding:0 20px;
  background:{{ colors.primary }};color:#fff}
header h1{font-size:1.05rem;margin:0;letter-spacing:0.04em}
header .meta{font-size:0.75rem;opacity:0.85;text-align:right}
main{flex:1;display:flex;min-height:0}
#map{flex:1}
aside{width:280px;padding:16px;overflow-y:auto;background:{{ colors.surface }};
  border-left:1px solid {{ colors.border }}}
aside h2{font-size:0.8rem;text-transform:uppercase;color:{{ colors.text_dim }};margin:18px 0 8px}
aside select{width:100%;padding:4px}
.legend-row{display:flex;align-items:center;gap:8px;font-size:0.85rem;margin:3px 0}
.legend-dot{width:10px;height:10px;border-radius:50%}
#tier{font-family:monospace;font-size:0.85rem}
#playback{display:none}
#playback input{width:100%}
</style>
</head>
<body>
<header>
  <h1>{{ title }}</h1>
  <div class="meta"><div>{{ run_id }}</div><div>{{ generated_at }}</div></div>
</header>
<main>
  <div id="map"></div>
  <aside>
    <h2>Select Year</h2>
    <select id="year">
      {% for y in years %}<option value="{{ y }}" {% if y == selected_year %}selected{% endif %}>{{ y }}{% if loop.last %} (Latest){% endif %}</option>{% endfor %}
    </select>
    <h2>Layers</h2>
    <label><input type="checkbox" id="toggle-distress"> Show Distress Points</label><br>
    <label><input type="checkbox" id="toggle-video"> Show Video Track</label>
    <div id="playback">
      <h2>Playback</h2>
      <input type="range" id="progress" min="0" max="100" step="0.1" value="0">
    </div>
    <h2>Detail</h2>
    <div id="tier"></div>
    <h2>Condition Scale</h2>
    {% for label, range_text, color in scale %}
    <div class="legend-row"><span class="legend-dot" style="background:{{ color }}"></span>{{ label }} ({{ range_text }})</div>
    {% endfor %}
    <div id="chart"></div>
  </aside>
</main>
<script src="https://unpkg.com/leaflet@1.9.4/dist/leaflet.js" crossorigin=""></script>
<script src="https://cdn.plot.ly/plotly-2.35.2.min.js"></script>
<script>
(function(){
  var DATA = {{ data_json | safe }};
  var CFG = {{ config_json | safe }};
  var chart = {{ chart_json | safe }};
  Plotly.newPlot('chart', chart.data, chart.layout, {displayModeBar:false, responsive:true});

  var map = L.map('map', {zoomControl:true}).setView(CFG.center, CFG.zoom);
  L.tileLayer('https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png', {
    attribution:'&copy; OpenStreetMap contributors', maxZoom:20
  }).addTo(map);

  var S = {year:String(CFG.year), tier:null, distress:false, video:false, progress:0,
           path:[], pathKey:null, restoring:false};
  var groups = {superSections:L.layerGroup(), sections:L.layerGroup(), distress:L.layerGroup()};
  var marker = null;

  function tierFor(z){
    if(!(z >= CFG.detailZoom)) return 0;
    if(CFG.twoTier || z < CFG.inspectionZoom) return 1;
    return 2;
  }
  function layersFor(tier){
    return {superSections:true, sections:tier >= 1, distress:tier >= 2 || S.distress};
  }

  function buildGroups(){
    var d = DATA[S.year];
    Object.keys(groups).forEach(function(k){ groups[k].clearLayers(); });
    d.superSections.forEach(function(s){
      L.polyline(s.coordinates, {color:s.color, weight:CFG.superWeight, opacity:0.9})
        .bindPopup('<b>'+s.name+'</b><br>Condition: '+s.condition+'%<br>Length: '+s.lengthKm+
                   ' km<br>Traffic: '+s.traffic.toLocaleString()+'/day<br>Inspected: '+(s.inspected||'N/A'))
        .addTo(groups.superSections);
    });
    d.sections.forEach(function(s){
      L.polyline(s.coordinates, {color:s.color, weight:CFG.sectionWeight, opacity:0.8})
        .bindPopup('10m Section<br>Condition: '+s.condition+'%').addTo(groups.sections);
    });
    d.distress.forEach(function(p){
      L.circle(p.position, {radius:CFG.distressRadius, color:p.color, fillColor:p.fill,
                            fillOpacity:0.9, weight:2})
        .bindPopup(p.type+'<br>Severity: '+p.severity+'/5<br>Size: '+p.size+'m²')
        .addTo(groups.distress);
    });
  }

  function applyLayers(){
    var vis = layersFor(S.tier);
    Object.keys(groups).forEach(function(k){
      if(vis[k] && !map.hasLayer(groups[k])) groups[k].addTo(map);
      if(!vis[k] && map.hasLayer(groups[k])) map.removeLayer(groups[k]);
    });
    document.getElementById('tier').textContent =
      ['Overview','Detail','Inspection'][S.tier] + ' (zoom ' + map.getZoom() + ')';
    syncPath();
  }

  function onZoom(){
    var tier = tierFor(map.getZoom());
    if(tier === S.tier) return;
    S.tier = tier;
    applyLayers();
  }

  function syncPath(){
    if(!S.video) return;
    var vis = layersFor(S.tier);
    var key = S.year + ':' + vis.sections;
    if(key === S.pathKey) return;
    S.pathKey = key;
    var d = DATA[S.year];
    var src = vis.sections ? d.sections : d.superSections;
    var wasEmpty = S.path.length === 0;
    S.path = [];
    src.forEach(function(s){ s.coordinates.forEach(function(c){ S.path.push(c); }); });
    if(S.path.length && wasEmpty) placeMarker(S.path[0]);
    track();
  }

  function targetIndex(p, n){
    if(!(p > 0)) return 0;
    return Math.min(Math.floor((p / 100) * n), n - 1);
  }

  function placeMarker(pos){
    if(!marker){
      marker = L.circleMarker(pos, {radius:6, color:'{{ colors.marker_stroke }}',
        fillColor:'{{ colors.marker_fill }}', fillOpacity:1, weight:2});
    }
    marker.setLatLng(pos);
    if(S.video && !map.hasLayer(marker)) marker.addTo(map);
  }

  function track(){
    if(!S.video || !S.path.length) return;
    var pos = S.path[targetIndex(S.progress, S.path.length)];
    var cur = marker && marker.getLatLng();
    if(cur && cur.lat === pos[0] && cur.lng === pos[1]) return;
    placeMarker(pos);
    // Newer panTo calls replace the running animation target.
    map.panTo(pos, {animate:true, duration:CFG.followMs / 1000});
  }

  document.getElementById('year').addEventListener('change', function(e){
    if(e.target.value === S.year) return;
    var saved = {center:map.getCenter(), zoom:map.getZoom()};
    S.year = e.target.value;
    S.pathKey = null;
    buildGroups();
    applyLayers();
    requestAnimationFrame(function(){
      S.restoring = true;
      map.setView(saved.center, saved.zoom, {animate:false});
      S.restoring = false;
    });
  });
  document.getElementById('toggle-distress').addEventListener('change', function(e){
    S.distress = e.target.checked; applyLayers();
  });
  document.getElementById('toggle-video').addEventListener('change', function(e){
    S.video = e.target.checked;
    document.getElementById('playback').style.display = S.video ? 'block' : 'none';
    if(!S.video && marker) map.removeLayer(marker);
    S.pathKey = null; syncPath();
  });
  document.getElementById('progress').addEventListener('input', function(e){
    S.progress = parseFloat(e.target.value); track();
  });

  map.on('zoomend', onZoom);
  buildGroups();
  onZoom();
})();
</script>
</body>
</html>
"""
