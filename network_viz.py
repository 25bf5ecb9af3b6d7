"""
Network visualization of coalition blocs and the wars between nations.
"""

import networkx as nx
import matplotlib.pyplot as plt
from pathlib import Path

from config import SimulationConfig

COALITION_COLORS = ['#44AAFF', '#44FF88', '#FFDD44', '#FF88FF', '#88FFFF', '#FFAA44']


class NetworkVisualizer:
    def __init__(self, config: SimulationConfig):
        self.config = config
        plt.style.use('dark_background')

    def build_graph(self, world) -> nx.Graph:
        """
        Nodes: active nations (size=power)
        Edges: shared coalition membership, or an active war
        """
        G = nx.Graph()

        for n in world.registry.active_nations(include_player=True):
            G.add_node(n.code, label=n.name, power=max(n.power, 1), player=n.is_player)

        for i, coalition in enumerate(world.coalitions.coalitions.values()):
            color = COALITION_COLORS[i % len(COALITION_COLORS)]
            members = [m for m in coalition.members if m in G.nodes]
            for a in members:
                for b in members:
                    if a < b:
                        G.add_edge(a, b, kind='coalition', color=color, coalition=coalition.name)

        # A war overrides any shared membership on the same pair
        for war in world.wars.active_wars():
            if war.attacker in G.nodes and war.defender in G.nodes:
                G.add_edge(war.attacker, war.defender, kind='war', color='#FF4444')

        return G

    def create_conflict_network(self, world, output_path: Path):
        """Render coalitions as colored edges and active wars as red edges."""
        G = self.build_graph(world)

        plt.figure(figsize=(12, 12), facecolor='#1a1a1a')

        pos = nx.spring_layout(G, k=0.5, seed=42)

        powers = nx.get_node_attributes(G, 'power')
        max_power = max(powers.values()) if powers else 1
        node_sizes = [200 + 1800 * powers[n] / max_power for n in G.nodes()]
        node_colors = ['#FF8844' if G.nodes[n]['player'] else '#4488FF' for n in G.nodes()]
        nx.draw_networkx_nodes(G, pos, node_size=node_sizes, node_color=node_colors, alpha=0.8)

        alliance_edges = [(u, v) for u, v, d in G.edges(data=True) if d['kind'] == 'coalition']
        war_edges = [(u, v) for u, v, d in G.edges(data=True) if d['kind'] == 'war']
        if alliance_edges:
            nx.draw_networkx_edges(G, pos, edgelist=alliance_edges,
                                   edge_color=[G[u][v]['color'] for u, v in alliance_edges], alpha=0.5)
        if war_edges:
            nx.draw_networkx_edges(G, pos, edgelist=war_edges, edge_color='#FF4444', width=3, style='dashed')

        nx.draw_networkx_labels(G, pos, labels=nx.get_node_attributes(G, 'label'), font_size=8, font_color='white')

        plt.title("Coalitions and Active Wars", color='white', fontsize=16)
        plt.axis('off')
        plt.savefig(output_path, dpi=100, bbox_inches='tight', facecolor='#1a1a1a')
        plt.close()
        return output_path
