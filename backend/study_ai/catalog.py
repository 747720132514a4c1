"""
Study AI - Subject Catalogue
The CS subjects and topics offered for explanations, practice and planning.
"""
from typing import List

from pydantic import BaseModel


class Subject(BaseModel):
    """A subject and its topics."""
    id: str
    name: str
    description: str
    topics: List[str]


SUBJECTS: List[Subject] = [
    Subject(
        id="data-structures",
        name="Data Structures",
        description="Arrays, Linked Lists, Trees, Graphs, Hash Tables",
        topics=[
            "Arrays & Strings", "Linked Lists", "Stacks & Queues", "Trees & BST",
            "Heaps & Priority Queues", "Hash Tables", "Graphs", "Tries",
        ],
    ),
    Subject(
        id="algorithms",
        name="Algorithms",
        description="Sorting, Searching, Dynamic Programming, Greedy",
        topics=[
            "Sorting Algorithms", "Searching Algorithms", "Recursion & Backtracking",
            "Dynamic Programming", "Greedy Algorithms", "Divide & Conquer",
            "Graph Algorithms", "Complexity Analysis",
        ],
    ),
    Subject(
        id="dbms",
        name="DBMS",
        description="SQL, Normalization, Transactions, Indexing",
        topics=[
            "ER Model & Design", "Relational Model", "SQL Queries",
            "Normalization", "Transactions & Concurrency", "Indexing",
            "Query Optimization", "NoSQL Basics",
        ],
    ),
    Subject(
        id="os",
        name="Operating Systems",
        description="Processes, Memory, Scheduling, File Systems",
        topics=[
            "Processes & Threads", "CPU Scheduling", "Process Synchronization",
            "Deadlocks", "Memory Management", "Virtual Memory",
            "File Systems", "I/O Systems",
        ],
    ),
    Subject(
        id="math",
        name="Discrete Math",
        description="Logic, Set Theory, Probability, Graph Theory",
        topics=[
            "Propositional Logic", "Set Theory", "Relations & Functions",
            "Combinatorics", "Probability", "Graph Theory",
            "Number Theory", "Boolean Algebra",
        ],
    ),
]


def subject_names(subject_ids: List[str]) -> List[str]:
    """Display names for the given ids, in catalogue order; unknown ids are skipped."""
    return [s.name for s in SUBJECTS if s.id in subject_ids]
