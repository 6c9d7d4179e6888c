"""
Content Graph CLI - operate the knowledge graph from a shell.

Usage:
    content-graph init-schema
    content-graph stats
    content-graph related 42 --depth 2 --types tagged_with mentions
    content-graph recommend post --limit 5
    content-graph ingest events/game_session.json
    content-graph --json stats
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from .config import Config
from .lib.embedding_providers import get_embedding_provider
from .lib.errors import GraphError
from .lib.graph_store import create_graph_store
from .models.graph import UpdateSummary
from .services.graph_service import KnowledgeGraphService


# ANSI color codes for output
class Colors:
    HEADER = '\033[95m'
    OKBLUE = '\033[94m'
    OKCYAN = '\033[96m'
    OKGREEN = '\033[92m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'


class ContentGraphCLI:
    """CLI interface to the knowledge graph service"""

    def __init__(self, service: KnowledgeGraphService, json_output: bool = False):
        self.service = service
        self.json_output = json_output

    def close(self):
        self.service.close()

    def _print_json(self, payload: Any):
        print(json.dumps(payload, indent=2, default=str))

    def init_schema(self):
        self.service.initialize_schema()
        if self.json_output:
            self._print_json({"status": "ok"})
            return
        print(f"{Colors.OKGREEN}✓ Schema initialized{Colors.ENDC}")

    def stats(self):
        stats = self.service.get_graph_statistics()
        if self.json_output:
            self._print_json(stats.model_dump(mode="json"))
            return

        print(f"{Colors.HEADER}Knowledge Graph Statistics{Colors.ENDC}\n")
        print(f"{Colors.BOLD}Nodes:{Colors.ENDC} {stats.nodes.total}")
        for row in stats.nodes.by_type:
            print(f"  {row.type:<20} {row.count}")
        print(f"\n{Colors.BOLD}Relationships:{Colors.ENDC} {stats.relationships.total}")
        for row in stats.relationships.by_type:
            print(f"  {row.type:<20} {row.count:<8} avg weight {row.avg_weight:.2f}")

    def related(self, node_id: int, depth: int, types: Optional[List[str]]):
        result = self.service.get_related_nodes(node_id, depth, types)
        if self.json_output:
            self._print_json(result.model_dump(mode="json", exclude={"nodes": {"__all__": {"embedding"}}}))
            return

        print(f"{Colors.HEADER}Related nodes from: {Colors.BOLD}{node_id}{Colors.ENDC}")
        print(f"Max depth: {depth}\n")

        if not result.nodes:
            print(f"{Colors.WARNING}No related nodes found{Colors.ENDC}")
            return

        current_depth = None
        for node in result.nodes:
            if node.depth != current_depth:
                current_depth = node.depth
                print(f"{Colors.BOLD}Depth {current_depth}:{Colors.ENDC}")
            rel_types = sorted({rel.type for rel in node.relationships})
            print(f"  • {node.name} ({Colors.OKCYAN}{node.type}:{node.id}{Colors.ENDC})")
            if rel_types:
                print(f"    Via: {', '.join(rel_types)}")

    def recommend(self, node_type: str, limit: int):
        recommendations = self.service.get_recommendations(node_type, limit)
        if self.json_output:
            self._print_json([r.model_dump(mode="json", exclude={"embedding"}) for r in recommendations])
            return

        if not recommendations:
            print(f"{Colors.WARNING}No connected {node_type} nodes{Colors.ENDC}")
            return

        print(f"{Colors.OKGREEN}Top {len(recommendations)} {node_type} nodes:{Colors.ENDC}\n")
        for i, rec in enumerate(recommendations, 1):
            print(
                f"{i}. {Colors.BOLD}{rec.name}{Colors.ENDC} "
                f"({rec.connection_strength} connections, avg weight {rec.avg_weight:.2f})"
            )

    def ingest(self, path: Path):
        """Ingest one event object, or a list of them, from a JSON file."""
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
        events = payload if isinstance(payload, list) else [payload]

        summaries: List[UpdateSummary] = []
        for event in events:
            summaries.append(self.service.process_system_event(event))

        if self.json_output:
            self._print_json([
                {
                    "nodes": len(s.nodes),
                    "relationships": len(s.relationships),
                    "concepts": len(s.concepts),
                    "steps_completed": s.steps_completed,
                    "steps_total": s.steps_total,
                }
                for s in summaries
            ])
            return

        for event, summary in zip(events, summaries):
            print(
                f"{Colors.OKGREEN}✓{Colors.ENDC} {event.get('type')}: "
                f"{len(summary.nodes)} nodes, {len(summary.relationships)} relationships, "
                f"{len(summary.concepts)} concepts"
            )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='content-graph',
        description='Content Graph CLI - Maintain and explore the knowledge graph',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--json', action='store_true',
                        help='Output results as JSON (for tool integration)')
    parser.add_argument('--store', choices=['postgres', 'memory'],
                        help='Graph store (default: GRAPH_STORE env var)')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    subparsers.add_parser('init-schema', help='Create the pgvector extension, schema and tables')
    subparsers.add_parser('stats', help='Node and relationship counts by type')

    related_parser = subparsers.add_parser('related',
        help='Nodes reachable from a node',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s 42
  %(prog)s 42 --depth 3 --types tagged_with mentions
        """)
    related_parser.add_argument('node_id', type=int, help='Seed node ID')
    related_parser.add_argument('--depth', type=int, default=2, help='Maximum traversal depth (default: 2)')
    related_parser.add_argument('--types', nargs='+', help='Filter by relationship types')

    recommend_parser = subparsers.add_parser('recommend', help='Most connected nodes of a type')
    recommend_parser.add_argument('node_type', help='Node type, e.g. post')
    recommend_parser.add_argument('--limit', type=int, default=10, help='Maximum results (default: 10)')

    ingest_parser = subparsers.add_parser('ingest', help='Process events from a JSON file')
    ingest_parser.add_argument('file', type=Path, help='JSON file holding an event or a list of events')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(level=getattr(logging, Config.log_level().upper(), logging.INFO))

    store = None
    try:
        store = create_graph_store(args.store)
        service = KnowledgeGraphService(store, get_embedding_provider())
    except GraphError as e:
        if store is not None:
            store.close()
        print(f"{Colors.FAIL}Error: {e}{Colors.ENDC}", file=sys.stderr)
        return 1

    cli = ContentGraphCLI(service, json_output=args.json)
    try:
        if args.command == 'init-schema':
            cli.init_schema()
        elif args.command == 'stats':
            cli.stats()
        elif args.command == 'related':
            cli.related(args.node_id, args.depth, args.types)
        elif args.command == 'recommend':
            cli.recommend(args.node_type, args.limit)
        elif args.command == 'ingest':
            cli.ingest(args.file)
    except (GraphError, OSError, json.JSONDecodeError) as e:
        print(f"{Colors.FAIL}Error: {e}{Colors.ENDC}", file=sys.stderr)
        return 1
    finally:
        cli.close()

    return 0


if __name__ == '__main__':
    sys.exit(main())
