"""Threat categories, classification keywords and criticality weights.

Order of CATEGORY_KEYWORDS matters: on equal keyword counts the category
listed first wins.
"""

UNCATEGORIZED = "Uncategorized"
THREAT_INTELLIGENCE = "Threat Intelligence"

CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Cyber Attack": [
        "attack", "hack", "compromised", "intrusion", "unauthorized access",
        "infiltration", "incident", "incursion",
    ],
    "Data Breach": [
        "breach", "leak", "stolen data", "data exposure", "database dump",
        "credentials leaked", "password dump", "personal information",
    ],
    "Vulnerability Disclosure": [
        "vulnerability", "cve-", "exploit", "zero-day", "security flaw",
        "bug", "weakness", "patch", "update required",
    ],
    "Exploit Development": [
        "exploit code", "proof of concept", "poc", "exploit development",
        "metasploit", "payload generator",
    ],
    "Malware Analysis": [
        "malware", "trojan", "virus", "worm", "ransomware", "spyware",
        "backdoor", "rootkit", "infection", "payload",
    ],
    THREAT_INTELLIGENCE: [
        "threat actor", "threat intelligence", "apt group",
        "indicator of compromise", "iocs", "campaign", "attribution",
    ],
    "Network Security": [
        "network", "firewall", "ddos", "dos attack", "traffic", "packet",
        "router", "switch", "infrastructure",
    ],
    "Security Research": [
        "research", "analysis", "study", "findings", "paper", "whitepaper",
        "report",
    ],
}

ALL_CATEGORIES: list[str] = [*CATEGORY_KEYWORDS, UNCATEGORIZED]

CATEGORY_BASE_SCORES: dict[str, int] = {
    "Cyber Attack": 90,
    "Data Breach": 85,
    "Vulnerability Disclosure": 80,
    "Exploit Development": 75,
    "Malware Analysis": 70,
    THREAT_INTELLIGENCE: 65,
    "Network Security": 60,
    "Security Research": 50,
    UNCATEGORIZED: 40,
}
DEFAULT_BASE_SCORE = 50

HIGH_PRIORITY_TERMS: list[str] = [
    "critical", "urgent", "immediate", "severe", "high risk", "zero-day",
    "active exploit", "live attack", "breach confirmed", "data leaked",
    "credentials exposed", "massive breach",
]
HIGH_PRIORITY_WEIGHT = 5

LOW_PRIORITY_TERMS: list[str] = [
    "discussion", "forum", "general", "informational", "news",
    "analysis only", "historical", "old",
]
LOW_PRIORITY_WEIGHT = 3

CRITICALITY_BUCKETS: list[tuple[str, int, int]] = [
    ("0-20", 0, 20),
    ("21-40", 21, 40),
    ("41-60", 41, 60),
    ("61-80", 61, 80),
    ("81-100", 81, 100),
]
