"""Operations over a registry that return a ServiceResult."""
