#!/usr/bin/env python3
"""
Entrance animations written into a slide's timing tree.

python-pptx has no animation API, so the ``<p:timing>`` element is built
with lxml and attached to the slide XML. Each animated element becomes one
entrance effect per shape it drew:

* ``onClick`` starts a new click group,
* ``withPrevious`` joins the running group at the same offset,
* ``afterPrevious`` starts once the previous effects have finished.

Delay, duration and repeat come from the element's :class:`AnimationSpec`.
"""

import itertools
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from lxml import etree

from .models import AnimationSpec

logger = logging.getLogger(__name__)

_NS_P = "http://schemas.openxmlformats.org/presentationml/2006/main"
_NSMAP = {"p": _NS_P}
_ROOT_CHILDREN = "p:tnLst/p:par/p:cTn[@nodeType='tmRoot']/p:childTnLst"

DEFAULT_EFFECT = 'fade'
DEFAULT_DURATION_MS = 500
SPEED_DURATIONS = {
    'very-slow': 3000,
    'slow': 2000,
    'medium': 1000,
    'fast': 500,
    'very-fast': 250,
}

# animation type -> (preset id, transition filter); no filter means the
# shape simply appears
EFFECT_PRESETS: Dict[str, Tuple[int, Optional[str]]] = {
    'appear': (1, None),
    'blinds': (3, 'blinds(horizontal)'),
    'checkerboard': (5, 'checkerboard(across)'),
    'circle': (6, 'circle(in)'),
    'diamond': (8, 'diamond(in)'),
    'dissolve': (9, 'dissolve'),
    'fade': (10, 'fade'),
    'fadein': (10, 'fade'),
    'plus': (13, 'plus(in)'),
    'randombars': (14, 'randombar(horizontal)'),
    'split': (16, 'barn(inVertical)'),
    'strips': (18, 'strips(downLeft)'),
    'wedge': (20, 'wedge'),
    'wheel': (21, 'wheel(1)'),
    'wipe': (22, 'wipe({direction})'),
}

WIPE_DIRECTIONS = ('down', 'up', 'left', 'right')

_TRIGGER_ALIASES = {
    'onclick': 'onClick',
    'click': 'onClick',
    'withprevious': 'withPrevious',
    'with': 'withPrevious',
    'afterprevious': 'afterPrevious',
    'after': 'afterPrevious',
}


@dataclass
class ShapeAnimation:
    """The shapes drawn for one element and the animation to apply to them."""
    shape_ids: List[int]
    spec: AnimationSpec


@dataclass
class _Effect:
    shape_id: int
    spec: AnimationSpec
    node_type: str
    delay_ms: int
    duration_ms: int


@dataclass
class _Step:
    offset_ms: int
    effects: List[_Effect] = field(default_factory=list)

    @property
    def length_ms(self) -> int:
        return max(
            (e.delay_ms + e.duration_ms * max(e.spec.repeat or 1, 1) for e in self.effects),
            default=0,
        )


@dataclass
class _ClickGroup:
    starts_on_click: bool
    steps: List[_Step] = field(default_factory=list)


def normalize_trigger(trigger: Optional[str]) -> str:
    """Map user spellings (``click``, ``after-previous`` ...) to OOXML trigger names."""
    if not trigger:
        return 'onClick'
    key = trigger.replace('-', '').replace('_', '').lower()
    if key not in _TRIGGER_ALIASES:
        logger.warning("Unknown animation trigger '%s'; using onClick", trigger)
        return 'onClick'
    return _TRIGGER_ALIASES[key]


def effect_duration(spec: AnimationSpec) -> int:
    if spec.duration_ms is not None:
        return max(1, spec.duration_ms)
    if spec.speed:
        return SPEED_DURATIONS.get(spec.speed.lower(), DEFAULT_DURATION_MS)
    return DEFAULT_DURATION_MS


def effect_preset(spec: AnimationSpec) -> Tuple[int, Optional[str]]:
    """Preset id and transition filter for an animation's type."""
    name = (spec.type or DEFAULT_EFFECT).replace('-', '').lower()
    if name not in EFFECT_PRESETS:
        logger.warning("Unsupported animation '%s'; using %s", spec.type, DEFAULT_EFFECT)
        name = DEFAULT_EFFECT
    preset_id, transition_filter = EFFECT_PRESETS[name]
    if transition_filter and '{direction}' in transition_filter:
        direction = (spec.direction or '').lower()
        if direction not in WIPE_DIRECTIONS:
            direction = WIPE_DIRECTIONS[0]
        transition_filter = transition_filter.format(direction=direction)
    return preset_id, transition_filter


def _plan(animations: Sequence[ShapeAnimation]) -> List[_ClickGroup]:
    groups: List[_ClickGroup] = []
    for animation in animations:
        if not animation.shape_ids:
            continue
        trigger = normalize_trigger(animation.spec.trigger)

        if trigger == 'onClick' or not groups:
            groups.append(_ClickGroup(starts_on_click=trigger == 'onClick', steps=[_Step(0)]))
        elif trigger == 'afterPrevious':
            previous = groups[-1].steps[-1]
            groups[-1].steps.append(_Step(previous.offset_ms + previous.length_ms))

        node_type = {
            'onClick': 'clickEffect',
            'withPrevious': 'withEffect',
            'afterPrevious': 'afterEffect',
        }[trigger]
        step = groups[-1].steps[-1]
        for index, shape_id in enumerate(animation.shape_ids):
            step.effects.append(_Effect(
                shape_id=shape_id,
                spec=animation.spec,
                # extra shapes of the same element start together with the first
                node_type=node_type if index == 0 else 'withEffect',
                delay_ms=animation.spec.delay_ms or 0,
                duration_ms=effect_duration(animation.spec),
            ))
    return groups


def _sub(parent, tag: str, **attrs):
    return etree.SubElement(parent, f"{{{_NS_P}}}{tag}", {k: str(v) for k, v in attrs.items()})


def _condition_list(parent, tag: str, delay) -> None:
    _sub(_sub(parent, tag), 'cond', delay=delay)


def _target(behaviour, shape_id: int) -> None:
    _sub(_sub(behaviour, 'tgtEl'), 'spTgt', spid=shape_id)


def _add_effect(parent, effect: _Effect, ids) -> None:
    preset_id, transition_filter = effect_preset(effect.spec)
    attrs = dict(
        id=next(ids), presetID=preset_id, presetClass='entr', presetSubtype=0,
        fill='hold', nodeType=effect.node_type,
    )
    if effect.spec.repeat and effect.spec.repeat > 1:
        attrs['repeatCount'] = effect.spec.repeat * 1000
    ctn = _sub(_sub(parent, 'par'), 'cTn', **attrs)
    _condition_list(ctn, 'stCondLst', effect.delay_ms)
    children = _sub(ctn, 'childTnLst')

    show = _sub(children, 'set')
    behaviour = _sub(show, 'cBhvr')
    set_ctn = _sub(behaviour, 'cTn', id=next(ids), dur=1, fill='hold')
    _condition_list(set_ctn, 'stCondLst', 0)
    _target(behaviour, effect.shape_id)
    _sub(_sub(behaviour, 'attrNameLst'), 'attrName').text = 'style.visibility'
    _sub(_sub(show, 'to'), 'strVal', val='visible')

    if transition_filter:
        anim = _sub(children, 'animEffect', transition='in', filter=transition_filter)
        behaviour = _sub(anim, 'cBhvr')
        _sub(behaviour, 'cTn', id=next(ids), dur=effect.duration_ms)
        _target(behaviour, effect.shape_id)


def _add_main_sequence(root_children, groups: List[_ClickGroup], ids) -> None:
    seq = _sub(root_children, 'seq', concurrent=1, nextAc='seek')
    main_id = next(ids)
    main = _sub(seq, 'cTn', id=main_id, dur='indefinite', nodeType='mainSeq')
    main_children = _sub(main, 'childTnLst')

    for group in groups:
        group_ctn = _sub(_sub(main_children, 'par'), 'cTn', id=next(ids), fill='hold')
        conditions = _sub(group_ctn, 'stCondLst')
        _sub(conditions, 'cond', delay='indefinite')
        if not group.starts_on_click:
            # runs as soon as the slide's main sequence begins
            begin = _sub(conditions, 'cond', evt='onBegin', delay=0)
            _sub(begin, 'tn', val=main_id)
        steps = _sub(group_ctn, 'childTnLst')

        for step in group.steps:
            step_ctn = _sub(_sub(steps, 'par'), 'cTn', id=next(ids), fill='hold')
            _condition_list(step_ctn, 'stCondLst', step.offset_ms)
            effects = _sub(step_ctn, 'childTnLst')
            for effect in step.effects:
                _add_effect(effects, effect, ids)

    for tag, event in (('prevCondLst', 'onPrev'), ('nextCondLst', 'onNext')):
        cond = _sub(_sub(seq, tag), 'cond', evt=event, delay=0)
        _sub(_sub(cond, 'tgtEl'), 'sldTgt')


def _new_timing(ids):
    timing = etree.Element(f"{{{_NS_P}}}timing", nsmap={'p': _NS_P})
    root = _sub(_sub(_sub(timing, 'tnLst'), 'par'), 'cTn',
                id=next(ids), dur='indefinite', restart='never', nodeType='tmRoot')
    _sub(root, 'childTnLst')
    return timing


def build_timing(animations: Sequence[ShapeAnimation]):
    """
    Build a ``<p:timing>`` element for ``animations`` (in play order).

    Returns None when there is nothing to animate.
    """
    groups = _plan(animations)
    if not groups:
        return None
    ids = itertools.count(1)
    timing = _new_timing(ids)
    _add_main_sequence(timing.find(_ROOT_CHILDREN, _NSMAP), groups, ids)
    return timing


def add_animations(slide, animations: Sequence[ShapeAnimation]) -> int:
    """
    Attach entrance animations to a python-pptx ``slide``.

    A timing tree already on the slide (python-pptx writes one for every
    embedded movie) is extended rather than replaced. Returns the number of
    shapes animated.
    """
    groups = _plan(animations)
    if not groups:
        return 0

    slide_element = slide._element
    timing = slide_element.find("p:timing", _NSMAP)
    root_children = timing.find(_ROOT_CHILDREN, _NSMAP) if timing is not None else None

    if root_children is None:
        if timing is not None:
            slide_element.remove(timing)
        ids = itertools.count(1)
        timing = _new_timing(ids)
        root_children = timing.find(_ROOT_CHILDREN, _NSMAP)
        # timing comes before the optional extension list
        ext_list = slide_element.find("p:extLst", _NSMAP)
        if ext_list is not None:
            ext_list.addprevious(timing)
        else:
            slide_element.append(timing)
    else:
        used = [int(ctn.get('id')) for ctn in timing.iter(f"{{{_NS_P}}}cTn") if ctn.get('id', '').isdigit()]
        ids = itertools.count(max(used, default=0) + 1)

    _add_main_sequence(root_children, groups, ids)

    count = sum(len(effect_step.effects) for group in groups for effect_step in group.steps)
    logger.debug("Added %d animated shapes to slide", count)
    return count
