"""Domain layer: entities, enumerations, errors and collaborator ports."""
