"""Default Webflow to Payload field mappings and target collection schemas."""

from typing import Dict, List, Optional

from .models.migration import EntityType
from .models.schema import (
    CollectionSchema,
    EntityMapping,
    FieldDefinition,
    FieldMapping,
    FieldType,
    MatchStrategy,
    MigrationMapping,
    TransformType,
)

PROJECT_TYPE_MAP = {
    "open-source": "open-source",
    "opensource": "open-source",
    "open source": "open-source",
    "research": "research",
    "education": "education",
    "infrastructure": "infrastructure",
    "infra": "infrastructure",
}

# Webflow reference fields on a project; the "-2" variants replaced the
# originals in the Webflow schema and both can be populated.
PROJECT_CONTRIBUTOR_FIELDS = {
    "bitcoinContributors": ["bitcoin-contributors-2", "bitcoin-contributors"],
    "litecoinContributors": ["litecoin-contributors-2", "litecoin-contributors"],
    "advocates": ["advocates-2", "advocates"],
}


def _text(source: str, target: str, default: Optional[str] = None, fallbacks: Optional[List[str]] = None) -> FieldMapping:
    config = {"fallback_fields": fallbacks} if fallbacks else {}
    return FieldMapping(source, target, TransformType.STRING, config, default_value=default)


def _contributors() -> EntityMapping:
    return EntityMapping(
        name=EntityType.CONTRIBUTORS.value,
        target_collection="contributors",
        match_strategy=MatchStrategy.SLUG,
        field_mappings=[
            _text("name", "name", default="Unknown Contributor"),
            FieldMapping("$slug", "slug", TransformType.SLUG),
            _text("twitter-link", "twitterLink"),
            _text("discord-link", "discordLink"),
            _text("github-link", "githubLink"),
            _text("youtube-link", "youtubeLink"),
            _text("linkedin-link", "linkedinLink"),
            _text("email", "email"),
        ],
    )


def _projects() -> EntityMapping:
    references = [
        FieldMapping(
            None,
            target,
            TransformType.REFERENCE,
            {"entity": EntityType.CONTRIBUTORS.value, "fields": fields},
        )
        for target, fields in PROJECT_CONTRIBUTOR_FIELDS.items()
    ]
    return EntityMapping(
        name=EntityType.PROJECTS.value,
        target_collection="projects",
        match_strategy=MatchStrategy.SLUG,
        dependencies=[EntityType.CONTRIBUTORS.value],
        field_mappings=[
            _text("name", "name", default="Untitled Project"),
            FieldMapping("$slug", "slug", TransformType.SLUG),
            _text("summary", "summary", fallbacks=["name"], default=""),
            FieldMapping("content", "content", TransformType.RICHTEXT),
            FieldMapping("status", "status", TransformType.STATUS, {"default": "active"}),
            FieldMapping("project-type", "projectType", TransformType.ENUM_MAP, {"mapping": PROJECT_TYPE_MAP}),
            FieldMapping("hidden", "hidden", TransformType.BOOLEAN, default_value=False),
            FieldMapping("recurring", "recurring", TransformType.BOOLEAN, default_value=False),
            FieldMapping("total-paid", "totalPaid", TransformType.NUMBER, default_value=0),
            FieldMapping("service-fees-collected", "serviceFeesCollected", TransformType.NUMBER, default_value=0),
            _text("website-link", "website"),
            _text("github-link", "github"),
            _text("twitter-link", "twitter"),
            _text("discord-link", "discord"),
            _text("telegram-link", "telegram"),
            _text("reddit-link", "reddit"),
            _text("facebook-link", "facebook"),
            *references,
            FieldMapping("hashtags", "hashtags", TransformType.TAG_LIST),
        ],
    )


def _faqs() -> EntityMapping:
    return EntityMapping(
        name=EntityType.FAQS.value,
        target_collection="faqs",
        match_strategy=MatchStrategy.FIELDS,
        match_fields=["question", "project"],
        dependencies=[EntityType.PROJECTS.value],
        field_mappings=[
            _text("question", "question", fallbacks=["name"], default="Untitled FAQ"),
            FieldMapping("answer", "answer", TransformType.RICHTEXT),
            FieldMapping("project", "project", TransformType.REFERENCE_ONE, {"entity": EntityType.PROJECTS.value, "required": True}),
            FieldMapping("order", "order", TransformType.NUMBER, default_value=0),
            _text("category", "category"),
        ],
    )


def _posts() -> EntityMapping:
    return EntityMapping(
        name=EntityType.POSTS.value,
        target_collection="posts",
        match_strategy=MatchStrategy.ANY_FIELD,
        match_fields=["xPostLink", "youtubeLink", "redditLink"],
        dependencies=[EntityType.PROJECTS.value],
        field_mappings=[
            FieldMapping(None, "xPostLink", TransformType.POST_LINK, {"kind": "x"}),
            FieldMapping(None, "youtubeLink", TransformType.POST_LINK, {"kind": "youtube"}),
            FieldMapping(None, "redditLink", TransformType.POST_LINK, {"kind": "reddit"}),
            FieldMapping("projects", "projects", TransformType.REFERENCE, {"entity": EntityType.PROJECTS.value, "required": True}),
        ],
    )


def _updates() -> EntityMapping:
    return EntityMapping(
        name=EntityType.UPDATES.value,
        target_collection="updates",
        match_strategy=MatchStrategy.FIELDS,
        match_fields=["title", "project"],
        dependencies=[EntityType.PROJECTS.value],
        field_mappings=[
            _text("title", "title", fallbacks=["name"], default="Untitled Update"),
            _text("summary", "summary"),
            FieldMapping("content", "content", TransformType.RICHTEXT),
            FieldMapping("project", "project", TransformType.REFERENCE_ONE, {"entity": EntityType.PROJECTS.value, "required": True}),
            FieldMapping("date", "date", TransformType.DATE, {"fallback_fields": ["createdOn", "$createdOn"]}),
            _text("authorTwitterHandle", "authorTwitterHandle", fallbacks=["author-twitter-handle"]),
            FieldMapping("tags", "tags", TransformType.TAG_LIST),
        ],
    )


def _matching_donors() -> EntityMapping:
    return EntityMapping(
        name=EntityType.MATCHING_DONORS.value,
        target_collection="matching-donors",
        match_strategy=MatchStrategy.FIELDS,
        match_fields=["webflowId"],
        dependencies=[EntityType.PROJECTS.value, EntityType.CONTRIBUTORS.value],
        field_mappings=[
            FieldMapping("$id", "webflowId", TransformType.STRING),
            _text("name", "name", default="Unknown Donor"),
            FieldMapping(
                "matching-type",
                "matchingType",
                TransformType.OPTION_LABEL,
                {
                    "field": "matching-type",
                    "keywords": [[["per", "specific"], "per-project"]],
                    "default": "all-projects",
                },
            ),
            FieldMapping("total-matching-amount", "totalMatchingAmount", TransformType.NUMBER, default_value=0),
            FieldMapping(
                "supported-projects",
                "supportedProjects",
                TransformType.REFERENCE,
                {"entity": EntityType.PROJECTS.value},
            ),
            FieldMapping("start-date", "startDate", TransformType.DATE),
            FieldMapping("end-date", "endDate", TransformType.DATE, {"fallback_offset_days": 365}),
            FieldMapping("multiplier", "multiplier", TransformType.NUMBER, default_value=1),
            FieldMapping(
                "status",
                "status",
                TransformType.OPTION_LABEL,
                {"field": "status", "mapping": {"active": "active"}, "default": "inactive"},
            ),
            FieldMapping(
                "contributor",
                "contributor",
                TransformType.REFERENCE_ONE,
                {"entity": EntityType.CONTRIBUTORS.value},
            ),
        ],
    )


def default_mapping() -> MigrationMapping:
    """The mapping used when no mapping file is configured."""
    mappings = [_contributors(), _projects(), _faqs(), _posts(), _updates(), _matching_donors()]
    return MigrationMapping(
        name="webflow-to-payload",
        description="Webflow CMS collections to Payload CMS collections",
        entity_mappings={m.name: m for m in mappings},
    )


def _f(name: str, field_type: FieldType, **kwargs) -> FieldDefinition:
    return FieldDefinition(name=name, type=field_type, **kwargs)


def _collection(slug: str, *fields: FieldDefinition) -> CollectionSchema:
    return CollectionSchema(slug=slug, fields={f.name: f for f in fields})


PAYLOAD_COLLECTIONS: Dict[str, CollectionSchema] = {
    "contributors": _collection(
        "contributors",
        _f("name", FieldType.TEXT, required=True),
        _f("slug", FieldType.TEXT, required=True, unique=True),
        _f("profilePicture", FieldType.UPLOAD, relation_to="media"),
        _f("twitterLink", FieldType.TEXT),
        _f("discordLink", FieldType.TEXT),
        _f("githubLink", FieldType.TEXT),
        _f("youtubeLink", FieldType.TEXT),
        _f("linkedinLink", FieldType.TEXT),
        _f("email", FieldType.TEXT),
    ),
    "projects": _collection(
        "projects",
        _f("name", FieldType.TEXT, required=True),
        _f("slug", FieldType.TEXT, required=True, unique=True),
        _f("summary", FieldType.TEXT, required=True),
        _f("content", FieldType.RICHTEXT),
        _f("coverImage", FieldType.UPLOAD, relation_to="media"),
        _f("status", FieldType.SELECT, required=True, options=["active", "completed", "paused", "archived"]),
        _f("projectType", FieldType.SELECT, options=["open-source", "research", "education", "infrastructure"]),
        _f("hidden", FieldType.CHECKBOX),
        _f("recurring", FieldType.CHECKBOX),
        _f("totalPaid", FieldType.NUMBER),
        _f("serviceFeesCollected", FieldType.NUMBER),
        _f("bitcoinContributors", FieldType.RELATIONSHIP, relation_to="contributors", has_many=True),
        _f("litecoinContributors", FieldType.RELATIONSHIP, relation_to="contributors", has_many=True),
        _f("advocates", FieldType.RELATIONSHIP, relation_to="contributors", has_many=True),
        _f("hashtags", FieldType.ARRAY),
    ),
    "faqs": _collection(
        "faqs",
        _f("question", FieldType.TEXT, required=True),
        _f("answer", FieldType.RICHTEXT, required=True),
        _f("project", FieldType.RELATIONSHIP, required=True, relation_to="projects"),
        _f("order", FieldType.NUMBER),
        _f("category", FieldType.TEXT),
    ),
    "posts": _collection(
        "posts",
        _f("xPostLink", FieldType.TEXT),
        _f("youtubeLink", FieldType.TEXT),
        _f("redditLink", FieldType.TEXT),
        # Optional in Payload, but a post without a project is never migrated.
        _f("projects", FieldType.RELATIONSHIP, required=True, relation_to="projects", has_many=True),
    ),
    "updates": _collection(
        "updates",
        _f("title", FieldType.TEXT, required=True),
        _f("summary", FieldType.TEXT),
        _f("content", FieldType.RICHTEXT),
        _f("project", FieldType.RELATIONSHIP, required=True, relation_to="projects"),
        _f("date", FieldType.DATE, required=True),
        _f("authorTwitterHandle", FieldType.TEXT),
        _f("tags", FieldType.ARRAY),
    ),
    "matching-donors": _collection(
        "matching-donors",
        _f("webflowId", FieldType.TEXT, unique=True),
        _f("name", FieldType.TEXT, required=True),
        _f("matchingType", FieldType.SELECT, required=True, options=["all-projects", "per-project"]),
        _f("totalMatchingAmount", FieldType.NUMBER, required=True),
        _f("supportedProjects", FieldType.RELATIONSHIP, relation_to="projects", has_many=True),
        _f("startDate", FieldType.DATE, required=True),
        _f("endDate", FieldType.DATE, required=True),
        _f("multiplier", FieldType.NUMBER),
        _f("status", FieldType.SELECT, required=True, options=["active", "inactive"]),
        _f("contributor", FieldType.RELATIONSHIP, relation_to="contributors"),
    ),
}
