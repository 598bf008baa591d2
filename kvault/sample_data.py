"""Demo entries and relationships for an empty vault."""

from typing import List

from loguru import logger

from kvault.domain.entry import Entry, EntryCreate, EntryType
from kvault.domain.relationships import Relationship, RelationshipCreate, RelationshipType
from kvault.graph_stores.base import GraphStore

SAMPLE_ENTRIES = [
    EntryCreate(
        title="React Hooks Fundamentals",
        content=(
            "Understanding useState, useEffect, and custom hooks. The foundation of modern "
            "React development with functional components."
        ),
        type=EntryType.ARTICLE,
        tag_names=["React", "JavaScript", "Frontend"],
    ),
    EntryCreate(
        title="Custom Hook for API Calls",
        content="""function useApi(url) {
  const [data, setData] = useState(null);
  const [loading, setLoading] = useState(true);
  const [error, setError] = useState(null);

  useEffect(() => {
    fetch(url)
      .then(res => res.json())
      .then(setData)
      .catch(setError)
      .finally(() => setLoading(false));
  }, [url]);

  return { data, loading, error };
}""",
        type=EntryType.CODE_SNIPPET,
        language="javascript",
        tag_names=["React", "JavaScript", "API", "Custom Hooks"],
    ),
    EntryCreate(
        title="TypeScript Best Practices",
        content=(
            "Learn advanced TypeScript patterns, generics, utility types, and how to leverage "
            "the type system for better code quality and developer experience."
        ),
        type=EntryType.ARTICLE,
        tag_names=["TypeScript", "Best Practices", "Development"],
    ),
    EntryCreate(
        title="D3.js Force Simulation",
        content=(
            "Interactive data visualization with D3.js force simulations. Learn how to create "
            "dynamic, physics-based layouts for network graphs and node-link diagrams."
        ),
        type=EntryType.ARTICLE,
        tag_names=["D3.js", "Data Visualization", "JavaScript", "Interactive"],
    ),
    EntryCreate(
        title="Graph Visualization Component",
        content="""interface GraphNode {
  id: string;
  title: string;
  type: string;
  x?: number;
  y?: number;
}

function KnowledgeGraph({ nodes, links }: GraphProps) {
  const svgRef = useRef<SVGSVGElement>(null);

  useEffect(() => {
    const simulation = d3.forceSimulation(nodes)
      .force('link', d3.forceLink(links).id(d => d.id))
      .force('charge', d3.forceManyBody().strength(-300))
      .force('center', d3.forceCenter(width / 2, height / 2));
  }, [nodes, links]);
}""",
        type=EntryType.CODE_SNIPPET,
        language="typescript",
        tag_names=["D3.js", "React", "TypeScript", "Graph", "Visualization"],
    ),
    EntryCreate(
        title="Next.js Documentation",
        content=(
            "Official Next.js documentation with comprehensive guides, API reference, and "
            "examples for building full-stack React applications."
        ),
        type=EntryType.BOOKMARK,
        url="https://nextjs.org/docs",
        tag_names=["Next.js", "React", "Documentation", "Full-Stack"],
    ),
]

# (from index, to index, type, description) into SAMPLE_ENTRIES
SAMPLE_RELATIONSHIPS = [
    (0, 1, RelationshipType.SOURCE_FOR, "Custom hook builds upon React Hooks fundamentals"),
    (0, 2, RelationshipType.RELATED_TO, "Both are about modern development practices"),
    (3, 4, RelationshipType.SOURCE_FOR, "D3 concepts applied in graph component"),
    (4, 1, RelationshipType.INSPIRED_BY, "Graph component inspired by custom hook patterns"),
    (5, 0, RelationshipType.REFERENCES, "Next.js docs reference React fundamentals"),
    (2, 4, RelationshipType.BUILDS_ON, "TypeScript enhances graph component development"),
]


def load_sample_data(
    store: GraphStore, owner_id: str
) -> tuple[List[Entry], List[Relationship]]:
    """Create the sample entries and the relationships between them for an owner."""
    entries = [store.create_entry(owner_id, data) for data in SAMPLE_ENTRIES]
    relationships = [
        store.create_relationship(
            owner_id,
            RelationshipCreate(
                from_entry_id=entries[source].id,
                to_entry_id=entries[target].id,
                type=rel_type,
                description=description,
            ),
        )
        for source, target, rel_type, description in SAMPLE_RELATIONSHIPS
    ]
    logger.info(
        f"Created {len(entries)} sample entries and {len(relationships)} relationships "
        f"for owner {owner_id}"
    )
    return entries, relationships
