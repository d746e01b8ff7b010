# rbridge/script/generator.py
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from rbridge.model.attributes import Attribute, AttributeKind, check_kind
from rbridge.model.model_config import ModelConfiguration, ModelKeys
from rbridge.script import builder as rb
from rbridge.script.builder import RCodeBuilder
from rbridge.script.names import attribute_names, sanitize


class ScriptGenerator:
    """
    ScriptGenerator (pure logic)

    Semantics:
    - turns a ModelConfiguration into R program text
    - never talks to the engine, never touches the filesystem
    - every emitted name goes through `sanitize()`
    - every emitted value goes through `builder.literal()`
    """

    DEFAULT_TRAIN_FUNCTION = "randomForest"
    DEFAULT_TRAIN_PACKAGE = "randomForest"
    DEFAULT_PREDICT_FUNCTION = "predict"
    DEFAULT_PREDICT_ARGUMENTS = 'type = "prob"'
    DEFAULT_LEVELS_PATH = "forest$xlevels"
    CLASS_INDEX_EXTENSION = "classIndex"

    # variable names used inside generated programs
    NS = "ns"
    MODEL_OBJECT = "model.object"

    # ------------------------------------------------------------------
    # shared pieces
    # ------------------------------------------------------------------
    def required_libraries(self, config: ModelConfiguration) -> List[str]:
        """
        Configured libraries, plus the built-in trainer's package when no
        trainer override is configured.
        """
        libraries = config.libraries
        if (
            config.get_property(ModelKeys.TRAIN_FUNCTION) is None
            and self.DEFAULT_TRAIN_PACKAGE not in libraries
        ):
            libraries.append(self.DEFAULT_TRAIN_PACKAGE)
        return libraries

    @staticmethod
    def conversion_ranges(attributes: Sequence[Attribute]) -> Tuple[List[int], List[int]]:
        """
        1-based column positions bucketed by kind: (numeric, categorical).
        """
        numeric, categorical = [], []
        for position, attribute in enumerate(attributes, start=1):
            kind = check_kind(attribute)
            if kind == AttributeKind.NUMERIC:
                numeric.append(position)
            else:
                categorical.append(position)
        return numeric, categorical

    def _require(self, code: RCodeBuilder, config: ModelConfiguration) -> None:
        for library in self.required_libraries(config):
            code.line(f"library({library})")

    @staticmethod
    def _extra_arguments(arguments: Optional[str]) -> str:
        return f", {arguments.strip()}" if arguments and arguments.strip() else ""

    # ------------------------------------------------------------------
    # training
    # ------------------------------------------------------------------
    def training_script(
        self,
        config: ModelConfiguration,
        data_path: str | Path,
        save_path: str | Path,
        custom_code: Optional[str] = None,
    ) -> str:
        """
        Sample:

            local({
                library(randomForest)
                training.data <- foreign::read.arff("/tmp/x.arff")
                model.formula <- as.formula("`class` ~ .")
                model <- randomForest(model.formula, data = training.data)
                save(model, file = "/tmp/x.arff.model")
                "/tmp/x.arff.model"
            })
        """
        config.validate()

        class_name = sanitize(config.class_attribute.name)
        train_function = config.get_property(
            ModelKeys.TRAIN_FUNCTION, self.DEFAULT_TRAIN_FUNCTION
        )
        extra = self._extra_arguments(config.get_property(ModelKeys.TRAIN_FUNCTION_ARGUMENTS))

        code = RCodeBuilder()
        code.open("local({")
        self._require(code, config)
        if custom_code:
            code.lines(custom_code)
        code.assign("training.data", f"foreign::read.arff({rb.literal(str(data_path))})")
        code.assign("model.formula", f"as.formula({rb.literal(rb.quote_name(class_name) + ' ~ .')})")
        code.assign("model", f"{train_function}(model.formula, data = training.data{extra})")
        code.line(f"save(model, file = {rb.literal(str(save_path))})")
        code.line(rb.literal(str(save_path)))
        code.close("})")
        return code.build()

    # ------------------------------------------------------------------
    # namespace
    # ------------------------------------------------------------------
    def namespace_script(
        self,
        config: ModelConfiguration,
        namespace: str,
        artifact_path: str | Path,
        export_path: str | Path,
    ) -> str:
        """
        Build the whole namespace in a local scope and bind it to its global
        name as the very last statement: a failure anywhere leaves the
        previous binding (if any) untouched.
        """
        config.validate()
        features = config.feature_attributes
        ns = self.NS

        code = RCodeBuilder()
        code.open("local({")
        self._require(code, config)
        code.assign(ns, "new.env()")
        code.assign(
            f"{ns}$modelname",
            f"load(file = {rb.literal(str(artifact_path))}, envir = {ns})[1]",
        )
        code.assign(f"{ns}$attributes", rb.vector(attribute_names(features)))
        code.assign(f"{ns}$levels", self._levels_table(features))
        self._levels_lookup(code, config)
        self._scoring_function(code, config)
        self._export_function(code, config, export_path)
        code.line(f"assign({rb.literal(namespace)}, {ns}, envir = globalenv())")
        code.line("invisible(NULL)")
        code.close("})")
        return code.build()

    @staticmethod
    def _levels_table(features: Sequence[Attribute]) -> str:
        entries = [
            f"{rb.literal(sanitize(a.name))} = {rb.vector(a.levels)}"
            for a in features
            if a.is_categorical
        ]
        return "list(" + ", ".join(entries) + ")"

    def _levels_lookup(self, code: RCodeBuilder, config: ModelConfiguration) -> None:
        """
        Training-time levels come from the model object; the configured
        values are only used when the model does not record them.
        """
        ns = self.NS
        path = config.get_property(ModelKeys.PREDICT_LEVELS, self.DEFAULT_LEVELS_PATH)
        code.open(f"{ns}$levelsOf <- function(model.object, name) {{")
        code.assign("trained", f"model.object${path}[[name]]")
        code.line(f"if (is.null(trained)) {ns}$levels[[name]] else trained")
        code.close()

    def scoring_function(self, config: ModelConfiguration) -> str:
        config.validate()
        code = RCodeBuilder()
        self._scoring_function(code, config)
        return code.build()

    def _scoring_function(self, code: RCodeBuilder, config: ModelConfiguration) -> None:
        """
        Sample:

            ns$score <- function(v) {
                v <- as.data.frame(t(as.matrix(v)), stringsAsFactors = FALSE)
                names(v) <- ns$attributes
                model.object <- get(ns$modelname, envir = ns)
                num_range <- c(2)
                v[, num_range] <- lapply(v[, num_range, drop = FALSE], as.numeric)
                factor_range <- c(1)
                v[, factor_range] <- lapply(v[, factor_range, drop = FALSE], as.factor)
                v[["A1"]] <- factor(as.character(v[["A1"]]), levels = ns$levelsOf(model.object, "A1"))
                r <- predict(model.object, v, type = "prob")
                r
            }
        """
        ns, model = self.NS, self.MODEL_OBJECT
        features = config.feature_attributes
        numeric, categorical = self.conversion_ranges(features)

        predict_function = config.get_property(
            ModelKeys.PREDICT_FUNCTION, self.DEFAULT_PREDICT_FUNCTION
        )
        predict_arguments = config.get_property(
            ModelKeys.PREDICT_FUNCTION_ARGUMENTS, self.DEFAULT_PREDICT_ARGUMENTS
        )
        transform = config.get_property(ModelKeys.PREDICT_RESULT_TRANSFORM)

        code.open(f"{ns}$score <- function(v) {{")
        code.assign("v", "as.data.frame(t(as.matrix(v)), stringsAsFactors = FALSE)")
        code.assign("names(v)", f"{ns}$attributes")
        code.assign(model, f"get({ns}$modelname, envir = {ns})")

        if numeric:
            code.assign("num_range", rb.index_vector(numeric))
            code.assign("v[, num_range]", "lapply(v[, num_range, drop = FALSE], as.numeric)")
        if categorical:
            code.assign("factor_range", rb.index_vector(categorical))
            code.assign("v[, factor_range]", "lapply(v[, factor_range, drop = FALSE], as.factor)")

        for attribute in features:
            if not attribute.is_categorical:
                continue
            column = rb.literal(sanitize(attribute.name))
            code.assign(
                f"v[[{column}]]",
                f"factor(as.character(v[[{column}]]), levels = {ns}$levelsOf({model}, {column}))",
            )

        code.assign("r", f"{predict_function}({model}, v{self._extra_arguments(predict_arguments)})")
        if transform:
            code.assign("r", transform)
        code.line("r")
        code.close()

    def export_function(self, config: ModelConfiguration, export_path: str | Path) -> str:
        config.validate()
        code = RCodeBuilder()
        self._export_function(code, config, export_path)
        return code.build()

    def _export_function(
        self,
        code: RCodeBuilder,
        config: ModelConfiguration,
        export_path: str | Path,
    ) -> None:
        """
        The exporter loses the target column position, so it is written
        back as a top-level Extension element.
        """
        ns = self.NS
        target = rb.literal(str(export_path))
        extension = (
            f"XML::newXMLNode(\"Extension\", attrs = c(name = "
            f"{rb.literal(self.CLASS_INDEX_EXTENSION)}, value = {rb.literal(str(config.class_index))}))"
        )

        code.open(f"{ns}$exportArtifact <- function() {{")
        code.assign("doc", f"pmml::pmml(get({ns}$modelname, envir = {ns}))")
        code.assign("doc", f"XML::addChildren(doc, {extension}, at = 0)")
        code.line(f"XML::saveXML(doc, file = {target})")
        code.line(target)
        code.close()

    # ------------------------------------------------------------------
    # invocations
    # ------------------------------------------------------------------
    @staticmethod
    def score_call(namespace: str, row: Sequence) -> str:
        return f"{namespace}$score({rb.vector(row)})"

    @staticmethod
    def export_call(namespace: str) -> str:
        return f"{namespace}$exportArtifact()"

    @staticmethod
    def remove_namespace(namespace: str) -> str:
        return f"rm(list = {rb.literal(namespace)}, envir = globalenv())"
