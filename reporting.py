from pathlib import Path
from typing import List, Dict, Any
from jinja2 import Template
from datetime import datetime

SEVERITY_BADGES = {1: "secondary", 2: "warning", 3: "danger"}


class ReportGenerator:
    """Generates HTML reports for simulation results."""

    def __init__(self, config):
        self.config = config
        self.template = self._get_template()

    def generate_report(self, history: List[Dict[str, Any]], output_dir: Path):
        """Generate comprehensive HTML report."""
        output_dir = Path(output_dir)

        global_stats = [h['global_stats'] for h in history]
        events = []
        for h in history:
            step = h['step']
            for event in h.get('events', []):
                events.append({
                    "step": step,
                    "title": event["title"],
                    "description": event.get("description", ""),
                    "type": event.get("type", ""),
                    "badge": SEVERITY_BADGES.get(event.get("severity", 1), "secondary"),
                })

        final = history[-1] if history else {}
        nations = final.get("nations", {})

        def name_of(code):
            return nations.get(code, {}).get("name", code)

        wars = [
            {
                "attacker": name_of(w["attacker"]),
                "defender": name_of(w["defender"]),
                "goal": w["goal"],
                "attacker_gain": w["attacker_gain"],
                "defender_gain": w["defender_gain"],
                "battles": w["battles"],
            }
            for w in final.get("active_wars", [])
        ]
        coalitions = [
            {
                "name": c["name"],
                "icon": c["icon"],
                "type": c["type"],
                "leader": name_of(c["leader"]),
                "members": ", ".join(name_of(m) for m in c["members"]),
            }
            for c in final.get("coalitions", [])
        ]

        network_image = "coalition_network.png" if (output_dir / "coalition_network.png").exists() else None

        html_content = self.template.render(
            simulation_name="Conflict Simulation Run",
            timestamp=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            steps=len(history),
            final_stats=global_stats[-1] if global_stats else {},
            events=events,
            wars=wars,
            coalitions=coalitions,
            network_image=network_image,
            config=self.config
        )

        report_path = output_dir / "index.html"
        with open(report_path, "w") as f:
            f.write(html_content)

        return report_path

    def _get_template(self) -> Template:
        """Return Jinja2 template for the report."""
        return Template("""
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ simulation_name }} - Report</title>
    <link href="https://cdn.jsdelivr.net/npm/bootstrap@5.3.0/dist/css/bootstrap.min.css" rel="stylesheet">
    <style>
        body { background-color: #f8f9fa; }
        .card { margin-bottom: 20px; box-shadow: 0 4px 6px rgba(0,0,0,0.1); }
        .event-log { max-height: 600px; overflow-y: auto; font-size: 0.9em; }
        .stat-card { text-align: center; padding: 20px; }
        .stat-value { font-size: 2em; font-weight: bold; color: #0d6efd; }
        .stat-label { color: #6c757d; text-transform: uppercase; font-size: 0.8em; }
        img { max-width: 100%; height: auto; border-radius: 5px; }
    </style>
</head>
<body>
    <nav class="navbar navbar-dark bg-dark">
        <div class="container-fluid">
            <span class="navbar-brand mb-0 h1">{{ simulation_name }}</span>
            <span class="navbar-text">{{ timestamp }}</span>
        </div>
    </nav>

    <div class="container mt-4">
        <div class="row mb-4">
            <div class="col-md-2">
                <div class="card stat-card">
                    <div class="stat-value">{{ steps }}</div>
                    <div class="stat-label">Ticks</div>
                </div>
            </div>
            <div class="col-md-2">
                <div class="card stat-card">
                    <div class="stat-value">{{ final_stats.living_nations|default(0) }}</div>
                    <div class="stat-label">Surviving Nations</div>
                </div>
            </div>
            <div class="col-md-2">
                <div class="card stat-card">
                    <div class="stat-value">{{ final_stats.annexed_nations|default(0) }}</div>
                    <div class="stat-label">Annexed</div>
                </div>
            </div>
            <div class="col-md-2">
                <div class="card stat-card">
                    <div class="stat-value">{{ final_stats.active_wars|default(0) }}</div>
                    <div class="stat-label">Active Wars</div>
                </div>
            </div>
            <div class="col-md-2">
                <div class="card stat-card">
                    <div class="stat-value">{{ final_stats.coalitions|default(0) }}</div>
                    <div class="stat-label">Coalitions</div>
                </div>
            </div>
            <div class="col-md-2">
                <div class="card stat-card">
                    <div class="stat-value">{{ "{:,}".format(final_stats.total_casualties|default(0)) }}</div>
                    <div class="stat-label">Casualties</div>
                </div>
            </div>
        </div>

        <div class="row">
            <div class="col-md-8">
                {% if network_image %}
                <div class="card">
                    <div class="card-header fw-bold">Coalitions and Wars</div>
                    <div class="card-body text-center">
                        <img src="{{ network_image }}" alt="Coalition Network">
                    </div>
                </div>
                {% endif %}

                <div class="card">
                    <div class="card-header fw-bold">Active Wars</div>
                    <div class="card-body">
                        {% if wars %}
                        <table class="table table-sm">
                            <thead><tr><th>Attacker</th><th>Defender</th><th>Goal</th><th>Gains</th><th>Battles</th></tr></thead>
                            <tbody>
                            {% for war in wars %}
                            <tr>
                                <td>{{ war.attacker }}</td>
                                <td>{{ war.defender }}</td>
                                <td>{{ war.goal }}</td>
                                <td>{{ "%.0f"|format(war.attacker_gain) }}% / {{ "%.0f"|format(war.defender_gain) }}%</td>
                                <td>{{ war.battles }}</td>
                            </tr>
                            {% endfor %}
                            </tbody>
                        </table>
                        {% else %}
                        <div class="alert alert-success mb-0">No wars in progress.</div>
                        {% endif %}
                    </div>
                </div>

                <div class="card">
                    <div class="card-header fw-bold">Coalitions</div>
                    <div class="card-body">
                        {% for coalition in coalitions %}
                        <div class="border-bottom py-1">
                            {{ coalition.icon }} <strong>{{ coalition.name }}</strong>
                            <span class="badge bg-info">{{ coalition.type }}</span>
                            <span class="text-muted small">led by {{ coalition.leader }}: {{ coalition.members }}</span>
                        </div>
                        {% else %}
                        <div class="text-muted">No coalitions.</div>
                        {% endfor %}
                    </div>
                </div>
            </div>

            <div class="col-md-4">
                <div class="card">
                    <div class="card-header fw-bold">Event Log</div>
                    <div class="card-body event-log">
                        <input type="text" id="eventSearch" class="form-control mb-2" placeholder="Search events...">
                        <div id="eventList">
                            {% for event in events|reverse %}
                            <div class="event-item border-bottom py-1" title="{{ event.description }}">
                                <span class="badge bg-{{ event.badge }}">Tick {{ event.step }}</span>
                                {{ event.title }}
                            </div>
                            {% endfor %}
                        </div>
                    </div>
                </div>
            </div>
        </div>
    </div>

    <script>
        document.getElementById('eventSearch').addEventListener('keyup', function() {
            let filter = this.value.toLowerCase();
            let items = document.querySelectorAll('.event-item');
            items.forEach(function(item) {
                let text = item.textContent.toLowerCase();
                item.style.display = text.includes(filter) ? '' : 'none';
            });
        });
    </script>
</body>
</html>
        """)
