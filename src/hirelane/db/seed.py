from __future__ import annotations

import logging
import random
import re
from datetime import datetime, timedelta

from hirelane.db.base import utcnow
from hirelane.db.store import PersistentStore
from hirelane.types import CANDIDATE_STAGES, JOB_STATUSES, JOB_TYPES, SeedResult

logger = logging.getLogger(__name__)

JOB_TITLES: list[str] = [
    "Frontend Developer",
    "Backend Engineer",
    "Full Stack Developer",
    "DevOps Engineer",
    "Data Scientist",
    "Machine Learning Engineer",
    "Product Manager",
    "UI/UX Designer",
    "QA Engineer",
    "Mobile App Developer",
    "Cloud Architect",
    "Security Analyst",
    "Business Analyst",
    "Technical Writer",
    "Solutions Architect",
    "Database Administrator",
    "Game Developer",
    "AI Researcher",
    "Systems Engineer",
    "Site Reliability Engineer",
    "Project Manager",
    "IT Support Specialist",
    "Network Engineer",
    "Software Engineer Intern",
    "Blockchain Developer",
]

LOCATIONS: list[str] = [
    "San Francisco, CA",
    "New York, NY",
    "London, UK",
    "Berlin, Germany",
    "Toronto, Canada",
    "Bangalore, India",
    "Remote",
]

JOB_REQUIREMENTS: dict[str, list[str]] = {
    "Frontend Developer": [
        "Proficiency in React, Vue, or Angular",
        "Strong knowledge of HTML, CSS, and JavaScript",
    ],
    "Backend Engineer": ["Experience with Node.js, Python, or Java", "Understanding of RESTful APIs"],
    "Data Scientist": ["Strong knowledge of Python and ML libraries", "Experience with data visualization"],
    "Product Manager": ["Strong communication skills", "Experience with agile methodologies"],
}
DEFAULT_REQUIREMENTS = ["Bachelor's degree in relevant field", "Strong problem-solving skills"]

JOB_SKILLS: dict[str, list[str]] = {
    "Frontend Developer": ["React", "TypeScript", "Next.js", "CSS"],
    "Backend Engineer": ["Node.js", "PostgreSQL", "Docker", "AWS"],
    "Full Stack Developer": ["React", "Node.js", "GraphQL", "Prisma"],
    "DevOps Engineer": ["Kubernetes", "Terraform", "CI/CD", "GCP"],
    "Data Scientist": ["Python", "Pandas", "PyTorch", "SciKit-Learn"],
    "UI/UX Designer": ["Figma", "Adobe XD", "User Research"],
    "Mobile App Developer": ["React Native", "Swift", "Kotlin"],
    "Cloud Architect": ["AWS", "Azure", "Serverless"],
    "Machine Learning Engineer": ["Python", "TensorFlow", "NLP"],
}
DEFAULT_SKILLS = ["Agile", "Jira", "Git", "Scrum"]

FIRST_NAMES = ["Ashish", "Shikhar", "Ayush", "Sophia", "Michael", "Emma", "Daniel", "Olivia", "James", "Ava"]
LAST_NAMES = ["Smith", "Johnson", "Brown", "Taylor", "Anderson", "Clark", "Lewis", "Walker", "Young", "King"]

SCREENING_NOTE = (
    "Initial phone screening completed. Candidate shows strong technical background and good "
    "communication skills. @John Smith please review for next steps."
)
ASSESSMENT_NOTE = (
    "Technical assessment results look promising. Scored well on algorithms and system design. "
    "Ready for technical interview round."
)

ASSESSMENT_QUESTIONS: list[dict[str, object]] = [
    {
        "id": "q1",
        "text": "How many years of professional experience do you have in this role?",
        "options": ["0-1", "2-4", "5-7", "8+"],
    },
    {
        "id": "q2",
        "text": "Which working arrangement do you prefer?",
        "options": ["On-site", "Hybrid", "Remote"],
    },
    {
        "id": "q3",
        "text": "Are you comfortable with a take-home technical exercise?",
        "options": ["Yes", "No"],
    },
]


def slugify(value: str) -> str:
    """Lowercase and replace whitespace runs with hyphens. Collisions are kept."""
    return re.sub(r"\s+", "-", value.lower())


def generate_name(index: int) -> str:
    return f"{FIRST_NAMES[index % len(FIRST_NAMES)]} {LAST_NAMES[index % len(LAST_NAMES)]}"


def random_phone(rng: random.Random) -> str:
    return f"+1-{rng.randint(100, 999)}-{rng.randint(100, 999)}-{rng.randint(1000, 9999)}"


def build_job(index: int) -> dict[str, object]:
    title = JOB_TITLES[index % len(JOB_TITLES)]
    job_type = JOB_TYPES[index % len(JOB_TYPES)]
    location = LOCATIONS[index % len(LOCATIONS)]
    return {
        "title": title,
        "slug": slugify(title),
        "status": JOB_STATUSES[index % 2],
        "type": job_type,
        "location": location,
        "description": f"We are looking for a {title} to join our growing team.",
        "requirements": list(JOB_REQUIREMENTS.get(title, DEFAULT_REQUIREMENTS)),
        "skills": list(JOB_SKILLS.get(title, DEFAULT_SKILLS)),
        "tags": [
            title.split(" ")[0].lower(),
            job_type.lower(),
            "remote" if "Remote" in location else "onsite",
        ],
        "order": index + 1,
    }


def _candidate_history(candidate_id: int, now: datetime) -> tuple[list[dict], list[dict]]:
    def days_ago(days: float) -> datetime:
        return now - timedelta(days=days)

    notes = [
        {
            "candidate_id": candidate_id,
            "author": "Sarah Johnson",
            "content": SCREENING_NOTE,
            "created_at": days_ago(35),
        },
        {
            "candidate_id": candidate_id,
            "author": "Mike Chen",
            "content": ASSESSMENT_NOTE,
            "created_at": days_ago(33),
        },
    ]
    timeline = [
        {
            "candidate_id": candidate_id,
            "type": "system",
            "description": "Application received",
            "created_at": days_ago(36),
        },
        {
            "candidate_id": candidate_id,
            "type": "note",
            "description": "Added initial screening notes",
            "author": "Sarah Johnson",
            "created_at": days_ago(35),
        },
        {
            "candidate_id": candidate_id,
            "type": "stage-change",
            "description": "Stage changed from applied to screen",
            "author": "HR Team",
            "from_stage": "applied",
            "to_stage": "screen",
            "created_at": days_ago(35) + timedelta(minutes=5),
        },
        {
            "candidate_id": candidate_id,
            "type": "stage-change",
            "description": "Stage changed from screen to tech",
            "author": "HR Team",
            "from_stage": "screen",
            "to_stage": "tech",
            "created_at": days_ago(33),
        },
    ]
    return notes, timeline


def seed_store(
    store: PersistentStore,
    *,
    rng: random.Random | None = None,
    job_count: int = 25,
    candidate_count: int = 1000,
    assessment_count: int = 3,
    now: datetime | None = None,
) -> SeedResult:
    """Populate an empty store in one transaction.

    A store that already holds jobs is treated as seeded and left untouched,
    even if it holds no candidates.
    """
    if store.count("jobs") > 0:
        logger.info("Store already seeded; skipping")
        return SeedResult(seeded=False)

    rng = rng or random.Random()
    now = now or utcnow()

    with store.transaction() as tx:
        jobs = [build_job(i) for i in range(job_count)]
        job_ids = tx.bulk_insert("jobs", jobs)
        titles = {job_id: str(job["title"]) for job_id, job in zip(job_ids, jobs)}

        candidates = []
        for i in range(candidate_count if job_ids else 0):
            name = generate_name(i)
            job_id = rng.choice(job_ids)
            candidates.append(
                {
                    "job_id": job_id,
                    "job_title": titles.get(job_id, "Unknown Role"),
                    "name": name,
                    "email": f"{'.'.join(name.split()).lower()}@example.com",
                    "phone": random_phone(rng),
                    "applied_date": now - timedelta(days=rng.randrange(60)),
                    "stage": rng.choice(CANDIDATE_STAGES),
                }
            )
        candidate_ids = tx.bulk_insert("candidates", candidates)

        notes: list[dict] = []
        timeline: list[dict] = []
        for candidate_id in candidate_ids:
            candidate_notes, candidate_timeline = _candidate_history(candidate_id, now)
            notes.extend(candidate_notes)
            timeline.extend(candidate_timeline)
        tx.bulk_insert("notes", notes)
        tx.bulk_insert("timeline", timeline)

        assessments = [
            {"job_id": job_id, "questions": [dict(q) for q in ASSESSMENT_QUESTIONS]}
            for job_id in job_ids[:assessment_count]
        ]
        tx.bulk_insert("assessments", assessments)

    result = SeedResult(
        seeded=True,
        jobs=len(job_ids),
        candidates=len(candidate_ids),
        notes=len(notes),
        timeline=len(timeline),
        assessments=len(assessments),
    )
    logger.info("Seeded store %s", result.model_dump())
    return result
